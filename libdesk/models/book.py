"""Book model module.

This module defines the Book model for managing the library catalogue and
copy counts.
"""
from typing import Any, Dict, List, Optional, Tuple

from libdesk.models.database import get_db
from libdesk.models.notification import Notification
from libdesk.utils.request_helpers import blank_to_none

BOOK_COLUMNS = (
    'id', 'isbn', 'title', 'author', 'rack_number', 'category', 'publisher',
    'year_published', 'cover_image', 'total_copies', 'available_copies',
    'description', 'status', 'added_date',
)


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class Book:
    """Represents a catalogue entry.

    A book has ``total_copies`` physical copies of which
    ``available_copies`` are on the shelf. ``status`` is ``available`` while
    every copy is on the shelf and ``issued`` otherwise.

    Attributes:
        id (int): Primary key.
        isbn (str): ISBN, or None.
        title (str): Book title.
        author (str): Author name.
        rack_number (str): Shelf / rack location.
        category (str): Category name.
        publisher (str): Publisher name.
        year_published (int): Publication year.
        cover_image (str): Cover URL (``/uploads/...`` for uploaded covers).
        total_copies (int): Copies owned.
        available_copies (int): Copies on the shelf.
        description (str): Summary.
        status (str): 'available' or 'issued'.
        added_date (str): When the book was catalogued.
    """

    def __init__(self, id: int, title: str, author: str, isbn: Optional[str] = None,
                 rack_number: Optional[str] = None, category: Optional[str] = None,
                 publisher: Optional[str] = None, year_published: Optional[int] = None,
                 cover_image: Optional[str] = None, total_copies: Optional[int] = 1,
                 available_copies: Optional[int] = 1, description: Optional[str] = None,
                 status: Optional[str] = 'available', added_date: Optional[str] = None) -> None:
        self.id = id
        self.isbn = isbn
        self.title = title
        self.author = author
        self.rack_number = rack_number
        self.category = category
        self.publisher = publisher
        self.year_published = year_published
        self.cover_image = cover_image
        self.total_copies = total_copies
        self.available_copies = available_copies
        self.description = description
        self.status = status
        self.added_date = added_date

    @property
    def copies_on_shelf(self) -> int:
        """Available copies, inferring from ``status`` when the count is unset."""
        if self.available_copies is not None:
            return int(self.available_copies)
        return 1 if self.status == 'available' else 0

    @staticmethod
    def get_by_id(book_id: int) -> Optional['Book']:
        """Retrieve a book by its ID.

        Args:
            book_id: The identifier of the book.

        Returns:
            Book instance if found, None otherwise.
        """
        db = get_db()
        row = db.execute('SELECT * FROM books WHERE id = ?', (book_id,)).fetchone()
        if row:
            return Book(**dict(row))
        return None

    @staticmethod
    def search_page(filters: Dict[str, Any], limit: int,
                    offset: int) -> Tuple[List[Dict[str, Any]], int]:
        """Filter, order by title and page through the catalogue.

        Args:
            filters: Any of ``search``, ``category``, ``author``, ``year``,
                ``status`` and ``available``.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            Tuple of (rows for the page, total matching rows).

        Example:
            >>> rows, total = Book.search_page({'search': 'gita'}, 100, 0)
        """
        where = ' WHERE 1=1'
        params: List[Any] = []

        if filters.get('search'):
            where += ' AND (title LIKE ? OR author LIKE ? OR isbn LIKE ?)'
            term = f"%{filters['search']}%"
            params.extend([term, term, term])
        if filters.get('category'):
            where += ' AND category = ?'
            params.append(filters['category'])
        if filters.get('author'):
            where += ' AND author LIKE ?'
            params.append(f"%{filters['author']}%")
        if filters.get('year'):
            where += ' AND year_published = ?'
            params.append(filters['year'])
        if filters.get('status'):
            where += ' AND status = ?'
            params.append(filters['status'])
        if filters.get('available') == 'true':
            where += " AND (available_copies > 0 OR status = 'available')"

        db = get_db()
        total = db.execute('SELECT COUNT(*) FROM books' + where, params).fetchone()[0]
        rows = db.execute(
            'SELECT * FROM books' + where + ' ORDER BY title ASC LIMIT ? OFFSET ?',
            params + [limit, offset]
        ).fetchall()
        return [dict(row) for row in rows], total

    @staticmethod
    def create(data: Dict[str, Any]) -> Tuple[Optional[int], str]:
        """Add a book and announce it to the admin.

        Args:
            data: Request body; ``title`` and ``author`` are required.

        Returns:
            Tuple of (new book id or None, message).
        """
        title = data.get('title')
        author = data.get('author')
        if not title or not author:
            return None, 'Title and author are required'

        copies = _optional_int(data.get('total_copies')) or 1
        if copies < 1:
            copies = 1

        db = get_db()
        cursor = db.execute('''
            INSERT INTO books (isbn, title, author, rack_number, category, publisher,
                               year_published, cover_image, total_copies,
                               available_copies, description, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'available')
        ''', (
            blank_to_none(data.get('isbn')),
            title,
            author,
            blank_to_none(data.get('rack_number')),
            data.get('category') or None,
            data.get('publisher') or None,
            _optional_int(data.get('year_published')),
            data.get('cover_image') or None,
            copies,
            copies,
            data.get('description') or None,
        ))
        db.commit()
        book_id = cursor.lastrowid

        Notification.notify_admin(
            'new_book',
            f'New Book Added: {title}',
            f'"{title}" by {author} has been added to the library.',
            related_id=book_id,
            related_type='book',
        )
        return book_id, 'Book added'

    def update(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        """Update this book from a request body.

        Copy counts keep the number of copies currently out on loan:
        the new available count is the new total minus the copies issued.

        Returns:
            Tuple of (success, message).
        """
        title = data.get('title')
        author = data.get('author')
        if not title or not author:
            return False, 'Title and author are required'

        def pick(key: str) -> Any:
            return data[key] if key in data else getattr(self, key)

        current_total = self.total_copies or 1
        issued_copies = current_total - self.copies_on_shelf
        new_total = _optional_int(data.get('total_copies'))
        if new_total is None:
            new_total = current_total
        new_available = max(0, new_total - issued_copies)
        new_status = 'available' if new_available == new_total else 'issued'

        db = get_db()
        db.execute('''
            UPDATE books
            SET isbn = ?, title = ?, author = ?, rack_number = ?, category = ?,
                publisher = ?, year_published = ?, cover_image = ?, total_copies = ?,
                available_copies = ?, description = ?, status = ?
            WHERE id = ?
        ''', (
            blank_to_none(pick('isbn')),
            title,
            author,
            blank_to_none(pick('rack_number')),
            pick('category') or None,
            pick('publisher') or None,
            _optional_int(pick('year_published')),
            pick('cover_image') or None,
            new_total,
            new_available,
            pick('description') or None,
            new_status,
            self.id,
        ))
        db.commit()

        self.total_copies = new_total
        self.available_copies = new_available
        self.status = new_status
        return True, 'Book updated'

    def delete(self) -> None:
        db = get_db()
        db.execute('DELETE FROM books WHERE id = ?', (self.id,))
        db.commit()

    @staticmethod
    def bulk_delete(book_ids: List[int]) -> int:
        """Delete many books at once.

        Returns:
            Number of rows deleted.
        """
        db = get_db()
        placeholders = ','.join('?' for _ in book_ids)
        cursor = db.execute(f'DELETE FROM books WHERE id IN ({placeholders})', book_ids)
        db.commit()
        return cursor.rowcount

    def set_cover(self, url: str) -> Optional[str]:
        """Store a new cover URL and return the previous one."""
        previous = self.cover_image
        db = get_db()
        db.execute('UPDATE books SET cover_image = ? WHERE id = ?', (url, self.id))
        db.commit()
        self.cover_image = url
        return previous

    def adjust_available_copies(self, delta: int) -> None:
        """Take a copy off the shelf (-1) or put one back (+1).

        Putting a copy back never exceeds ``total_copies``; the book becomes
        ``available`` again once every copy is back.
        """
        total = self.total_copies or 1
        available = self.copies_on_shelf + delta
        if delta > 0:
            available = min(available, total)
        available = max(available, 0)
        status = 'available' if available >= total else 'issued'

        db = get_db()
        db.execute(
            'UPDATE books SET available_copies = ?, status = ? WHERE id = ?',
            (available, status, self.id)
        )
        self.available_copies = available
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in BOOK_COLUMNS}
