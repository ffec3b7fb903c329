"""Issue model module.

An issue is one loan of one copy of a book to a member. Issues move from
``issued`` to ``overdue`` once the due date has passed and to ``returned``
when the copy comes back.
"""
import logging
import sqlite3
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from libdesk.models.book import Book
from libdesk.models.category import MemberCategory
from libdesk.models.database import get_db, now_timestamp
from libdesk.models.member import Member
from libdesk.models.notification import Notification

logger = logging.getLogger(__name__)

ISSUE_STATUSES = ('issued', 'returned', 'overdue')
ACTIVE_STATUSES = ('issued', 'overdue')


class Issue:
    """Represents a book loan.

    Attributes:
        id (int): Primary key.
        book_id (int): Borrowed book.
        member_id (int): Borrowing member.
        issue_date (str): Date of the loan.
        due_date (str): Date the copy must be back.
        return_date (str): Date it came back, or None.
        status (str): 'issued', 'overdue' or 'returned'.
        notes (str): Free text.
        issued_at (str): Timestamp of the loan.
        returned_at (str): Timestamp of the return.
    """

    def __init__(self, id: int, book_id: int, member_id: int, issue_date: str,
                 due_date: str, return_date: Optional[str] = None,
                 status: str = 'issued', notes: Optional[str] = None,
                 issued_at: Optional[str] = None, returned_at: Optional[str] = None) -> None:
        self.id = id
        self.book_id = book_id
        self.member_id = member_id
        self.issue_date = issue_date
        self.due_date = due_date
        self.return_date = return_date
        self.status = status
        self.notes = notes
        self.issued_at = issued_at
        self.returned_at = returned_at

    @property
    def is_active(self) -> bool:
        """Return True while the copy is still out."""
        return self.status in ACTIVE_STATUSES

    @staticmethod
    def get_by_id(issue_id: int) -> Optional['Issue']:
        db = get_db()
        row = db.execute('SELECT * FROM issues WHERE id = ?', (issue_id,)).fetchone()
        if row:
            return Issue(**dict(row))
        return None

    @staticmethod
    def refresh_overdue_statuses() -> int:
        """Mark issued loans whose due date has passed as overdue.

        Returns:
            Number of issues promoted.
        """
        db = get_db()
        cursor = db.execute(
            "UPDATE issues SET status = 'overdue' WHERE status = 'issued' AND due_date < ?",
            (date.today().isoformat(),)
        )
        db.commit()
        if cursor.rowcount:
            logger.info('Marked %d issue(s) overdue', cursor.rowcount)
        return cursor.rowcount

    @staticmethod
    def refresh_and_notify() -> None:
        """Promote overdue loans, then create today's reminders.

        Reminder failures are logged; they never block the caller.
        """
        Issue.refresh_overdue_statuses()
        try:
            Notification.generate_due_notifications()
        except sqlite3.Error as e:
            get_db().rollback()
            logger.warning('Failed to generate notifications: %s', e)

    @staticmethod
    def search_page(filters: Dict[str, Any], limit: int,
                    offset: int) -> Tuple[List[Dict[str, Any]], int]:
        """Filter issues by ``member_id``, ``book_id`` and ``status``, newest first.

        Rows carry the book title, author and cover and the member's name
        and photo.
        """
        where = ' WHERE 1=1'
        params: List[Any] = []
        for key in ('member_id', 'book_id', 'status'):
            if filters.get(key):
                where += f' AND i.{key} = ?'
                params.append(filters[key])

        joins = '''
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
        '''
        db = get_db()
        total = db.execute('SELECT COUNT(*)' + joins + where, params).fetchone()[0]
        rows = db.execute('''
            SELECT i.id, i.book_id, i.member_id, i.issue_date, i.due_date, i.return_date,
                   i.status, i.notes, b.title, b.author, b.cover_image,
                   m.name AS member_name, m.profile_photo AS member_photo
        ''' + joins + where + ' ORDER BY i.issue_date DESC, i.id DESC LIMIT ? OFFSET ?',
            params + [limit, offset]
        ).fetchall()
        return [dict(row) for row in rows], total

    @staticmethod
    def create(data: Dict[str, Any]) -> Tuple[Optional[int], str]:
        """Lend a copy of a book to a member.

        Args:
            data: ``book_id`` and ``member_id`` (required), optional
                ``due_date`` and ``notes``.

        Returns:
            Tuple of (new issue id or None, message). Messages ending in
            ``not found`` refer to a missing book or member.
        """
        book_id = data.get('book_id')
        member_id = data.get('member_id')
        if not book_id or not member_id:
            return None, 'book_id and member_id are required'

        book = Book.get_by_id(book_id)
        if not book:
            return None, 'Book not found'
        if book.copies_on_shelf <= 0:
            return None, 'No copies available for this book'

        member = Member.get_by_id(member_id)
        if not member:
            return None, 'Member not found'
        if not member.is_active:
            return None, 'Member is inactive'

        max_books, loan_days = MemberCategory.resolve_limits(member.member_type)
        if member.count_active_issues() >= max_books:
            return None, f'Member has reached maximum borrowing limit of {max_books} books'

        today = date.today()
        due_date = data.get('due_date') or (today + timedelta(days=loan_days)).isoformat()

        db = get_db()
        try:
            cursor = db.execute('''
                INSERT INTO issues (book_id, member_id, issue_date, due_date, status,
                                    notes, issued_at)
                VALUES (?, ?, ?, ?, 'issued', ?, ?)
            ''', (book.id, member.id, today.isoformat(), due_date,
                  data.get('notes') or None, now_timestamp()))
            book.adjust_available_copies(-1)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return cursor.lastrowid, 'Book issued'

    @staticmethod
    def bulk_delete(issue_ids: List[int]) -> Tuple[int, int]:
        """Delete issues, putting copies of unreturned loans back on the shelf.

        Returns:
            Tuple of (issues deleted, copies restored).
        """
        db = get_db()
        placeholders = ','.join('?' for _ in issue_ids)
        try:
            active = db.execute(
                f'SELECT book_id FROM issues WHERE id IN ({placeholders}) '
                "AND status IN ('issued', 'overdue')",
                issue_ids
            ).fetchall()
            restored = 0
            for row in active:
                book = Book.get_by_id(row['book_id'])
                if book:
                    book.adjust_available_copies(1)
                    restored += 1
            cursor = db.execute(f'DELETE FROM issues WHERE id IN ({placeholders})', issue_ids)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return cursor.rowcount, restored

    def return_book(self) -> Tuple[bool, str]:
        """Close this loan and put the copy back on the shelf."""
        if self.status == 'returned':
            return False, 'Book is already returned'

        db = get_db()
        self.return_date = date.today().isoformat()
        self.returned_at = now_timestamp()
        try:
            db.execute('''
                UPDATE issues SET return_date = ?, status = 'returned', returned_at = ?
                WHERE id = ?
            ''', (self.return_date, self.returned_at, self.id))
            book = Book.get_by_id(self.book_id)
            if book:
                book.adjust_available_copies(1)
            db.commit()
        except Exception:
            db.rollback()
            raise
        self.status = 'returned'
        return True, 'Book returned successfully'

    def update(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        """Change the due date, return date or status of this loan.

        Moving an active loan to ``returned`` gives its copy back; moving a
        returned loan back to ``issued`` or ``overdue`` takes a copy again.

        Returns:
            Tuple of (success, message).
        """
        fields: Dict[str, Any] = {}
        if 'due_date' in data:
            fields['due_date'] = data['due_date']
        if 'return_date' in data:
            fields['return_date'] = data['return_date'] or None

        status = data.get('status')
        if 'status' in data:
            if status not in ISSUE_STATUSES:
                return False, 'Invalid status'
            fields['status'] = status

        if not fields:
            return False, 'No fields to update'

        book = Book.get_by_id(self.book_id)
        copy_delta = 0
        if status == 'returned' and self.is_active:
            copy_delta = 1
            if not fields.get('return_date'):
                fields['return_date'] = date.today().isoformat()
            fields['returned_at'] = self.returned_at or now_timestamp()
        elif status in ACTIVE_STATUSES and self.status == 'returned':
            if book and book.copies_on_shelf <= 0:
                return False, 'No copies available for this book'
            copy_delta = -1
            fields.setdefault('return_date', None)
            fields['returned_at'] = None

        assignments = ', '.join(f'{column} = ?' for column in fields)
        db = get_db()
        try:
            db.execute(f'UPDATE issues SET {assignments} WHERE id = ?',
                       list(fields.values()) + [self.id])
            if copy_delta and book:
                book.adjust_available_copies(copy_delta)
            db.commit()
        except Exception:
            db.rollback()
            raise

        for column, value in fields.items():
            setattr(self, column, value)
        return True, 'Issue updated successfully'

    def send_reminder(self) -> Optional[Notification]:
        """Log a reminder for this loan in the admin's notifications."""
        db = get_db()
        row = db.execute('''
            SELECT b.title, m.name AS member_name
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
            WHERE i.id = ?
        ''', (self.id,)).fetchone()
        title = row['title'] if row else 'Book'
        member_name = row['member_name'] if row else 'member'
        return Notification.notify_admin(
            'system',
            f'Reminder sent: {title}',
            f'Reminder sent to {member_name} for "{title}" (due {self.due_date}).',
            related_id=self.id,
            related_type='issue',
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'book_id': self.book_id,
            'member_id': self.member_id,
            'issue_date': self.issue_date,
            'due_date': self.due_date,
            'return_date': self.return_date,
            'status': self.status,
            'notes': self.notes,
            'issued_at': self.issued_at,
            'returned_at': self.returned_at,
        }
