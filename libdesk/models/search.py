"""Cross-entity search and book recommendations."""
from typing import Any, Dict, List, Tuple

from libdesk.models.database import get_db, rows_to_dicts
from libdesk.utils.legacy_hindi import contains_devanagari, unicode_to_krutidev_approx

ISSUE_SEARCH_LIMIT = 100
RECOMMENDATION_LIMIT = 10

_ON_SHELF = "(b.available_copies > 0 OR b.status = 'available')"


def search_terms(query: str) -> List[str]:
    """LIKE patterns for a free-text query.

    Books imported from legacy Hindi spreadsheets may still be stored in
    KrutiDev, so a Devanagari query also matches its KrutiDev spelling.
    """
    terms = [query]
    if contains_devanagari(query):
        legacy = unicode_to_krutidev_approx(query)
        if legacy and legacy != query:
            terms.append(legacy)
    return [f'%{term}%' for term in terms]


def _like_any(columns: Tuple[str, ...], patterns: List[str]) -> Tuple[str, List[str]]:
    clauses = []
    params: List[str] = []
    for pattern in patterns:
        for column in columns:
            clauses.append(f'{column} LIKE ?')
            params.append(pattern)
    return '(' + ' OR '.join(clauses) + ')', params


class Search:
    """Search across books, members and issues."""

    @staticmethod
    def search_all(filters: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
        """Run one query against every entity.

        Args:
            filters: Any of ``q``, ``category``, ``author``, ``year_from``,
                ``year_to``, ``status`` and ``member_type``.

        Returns:
            Dict with ``books``, ``members`` and ``issues`` lists.
        """
        patterns = search_terms(filters['q']) if filters.get('q') else []
        db = get_db()

        book_sql = 'SELECT * FROM books b WHERE 1=1'
        book_params: List[Any] = []
        if patterns:
            clause, params = _like_any(('b.title', 'b.author', 'b.isbn'), patterns)
            book_sql += ' AND ' + clause
            book_params.extend(params)
        if filters.get('category'):
            book_sql += ' AND b.category = ?'
            book_params.append(filters['category'])
        if filters.get('author'):
            book_sql += ' AND b.author LIKE ?'
            book_params.append(f"%{filters['author']}%")
        if filters.get('year_from'):
            book_sql += ' AND b.year_published >= ?'
            book_params.append(filters['year_from'])
        if filters.get('year_to'):
            book_sql += ' AND b.year_published <= ?'
            book_params.append(filters['year_to'])
        if filters.get('status'):
            book_sql += ' AND b.status = ?'
            book_params.append(filters['status'])
        book_sql += ' ORDER BY b.title ASC'

        member_sql = 'SELECT * FROM members m WHERE 1=1'
        member_params: List[Any] = []
        if patterns:
            clause, params = _like_any(('m.name', 'm.email', 'm.phone'), patterns)
            member_sql += ' AND ' + clause
            member_params.extend(params)
        if filters.get('member_type'):
            member_sql += ' AND m.member_type = ?'
            member_params.append(filters['member_type'])
        member_sql += ' ORDER BY m.name ASC'

        issue_sql = '''
            SELECT i.*, b.title, b.author, b.cover_image,
                   m.name AS member_name, m.profile_photo AS member_photo
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
            WHERE 1=1
        '''
        issue_params: List[Any] = []
        if patterns:
            clause, params = _like_any(
                ('b.title', 'b.author', 'b.isbn', 'm.name', 'm.email', 'm.phone'), patterns)
            issue_sql += ' AND ' + clause
            issue_params.extend(params)
        if filters.get('status'):
            issue_sql += ' AND i.status = ?'
            issue_params.append(filters['status'])
        issue_sql += ' ORDER BY i.issue_date DESC, i.id DESC LIMIT ?'
        issue_params.append(ISSUE_SEARCH_LIMIT)

        return {
            'books': rows_to_dicts(db.execute(book_sql, book_params).fetchall()),
            'members': rows_to_dicts(db.execute(member_sql, member_params).fetchall()),
            'issues': rows_to_dicts(db.execute(issue_sql, issue_params).fetchall()),
        }

    @staticmethod
    def recommendations(member_id: int) -> List[Dict[str, Any]]:
        """Available books a member is likely to enjoy.

        Books by authors or in categories the member borrowed before, minus
        the books already borrowed. Without any history the most borrowed
        available books are suggested, with their ``popularity``.
        """
        db = get_db()
        preferences = db.execute('''
            SELECT DISTINCT b.category, b.author
            FROM issues i
            JOIN books b ON i.book_id = b.id
            WHERE i.member_id = ?
        ''', (member_id,)).fetchall()

        if not preferences:
            return rows_to_dicts(db.execute(f'''
                SELECT b.*, COUNT(i.id) AS popularity
                FROM books b
                LEFT JOIN issues i ON b.id = i.book_id
                WHERE {_ON_SHELF}
                GROUP BY b.id
                ORDER BY popularity DESC, b.title ASC
                LIMIT ?
            ''', (RECOMMENDATION_LIMIT,)).fetchall())

        categories = sorted({row['category'] for row in preferences if row['category']}) or ['']
        authors = sorted({row['author'] for row in preferences if row['author']}) or ['']
        category_marks = ','.join('?' for _ in categories)
        author_marks = ','.join('?' for _ in authors)
        return rows_to_dicts(db.execute(f'''
            SELECT b.*
            FROM books b
            WHERE b.id NOT IN (SELECT book_id FROM issues WHERE member_id = ?)
              AND {_ON_SHELF}
              AND (b.category IN ({category_marks}) OR b.author IN ({author_marks}))
            ORDER BY b.title ASC
            LIMIT ?
        ''', [member_id] + categories + authors + [RECOMMENDATION_LIMIT]).fetchall())
