"""Circulation reports."""
from datetime import date
from typing import Any, Dict, List, Optional

from libdesk.models.database import get_db, rows_to_dicts

_PERIOD_MODIFIERS = {
    'month': '-1 month',
    'year': '-1 year',
}


def _period_filter(period: Optional[str]) -> str:
    modifier = _PERIOD_MODIFIERS.get(period or '')
    if not modifier:
        return ''
    return f" AND i.issue_date >= date('now', 'localtime', '{modifier}')"


class Report:
    """Read-only report queries used by the reports screen and exports."""

    @staticmethod
    def issued_books() -> List[Dict[str, Any]]:
        """Loans that have not been returned, newest first."""
        db = get_db()
        return rows_to_dicts(db.execute('''
            SELECT i.issue_date, i.due_date, b.title, b.author, b.isbn, b.cover_image,
                   m.name AS member_name, m.profile_photo
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
            WHERE i.return_date IS NULL
            ORDER BY i.issue_date DESC
        ''').fetchall())

    @staticmethod
    def overdue_books() -> List[Dict[str, Any]]:
        """Overdue loans, most overdue first.

        Callers refresh overdue statuses before asking for this report.
        """
        db = get_db()
        return rows_to_dicts(db.execute('''
            SELECT i.due_date, i.issue_date,
                   CAST(julianday(?) - julianday(i.due_date) AS INTEGER) AS days_overdue,
                   b.title, b.author, b.isbn, b.cover_image,
                   m.name AS member_name, m.email, m.phone, m.profile_photo
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
            WHERE i.status = 'overdue'
            ORDER BY days_overdue DESC
        ''', (date.today().isoformat(),)).fetchall())

    @staticmethod
    def popular_books(limit: int = 10, period: Optional[str] = None) -> List[Dict[str, Any]]:
        """Most borrowed books, optionally over the last month or year."""
        db = get_db()
        return rows_to_dicts(db.execute(f'''
            SELECT b.id, b.title, b.author, b.category, b.cover_image,
                   COUNT(i.id) AS borrow_count
            FROM books b
            LEFT JOIN issues i ON b.id = i.book_id{_period_filter(period)}
            GROUP BY b.id
            ORDER BY borrow_count DESC, b.title ASC
            LIMIT ?
        ''', (limit,)).fetchall())

    @staticmethod
    def active_members(limit: int = 10, period: Optional[str] = None) -> List[Dict[str, Any]]:
        db = get_db()
        return rows_to_dicts(db.execute(f'''
            SELECT m.id, m.name, m.email, m.member_type, m.profile_photo,
                   COUNT(i.id) AS borrow_count
            FROM members m
            LEFT JOIN issues i ON m.id = i.member_id{_period_filter(period)}
            GROUP BY m.id
            ORDER BY borrow_count DESC, m.name ASC
            LIMIT ?
        ''', (limit,)).fetchall())

    @staticmethod
    def monthly_stats(year: Optional[int] = None) -> List[Dict[str, int]]:
        """Issues, returns and overdue loans per month of ``year``.

        Always returns twelve rows; months without loans are zero-filled.

        Example:
            >>> Report.monthly_stats(2024)[0]
            {'month': 1, 'issues': 0, 'returns': 0, 'overdue': 0}
        """
        year = year or date.today().year
        monthly = [
            {'month': month, 'issues': 0, 'returns': 0, 'overdue': 0}
            for month in range(1, 13)
        ]
        db = get_db()
        rows = db.execute('''
            SELECT CAST(strftime('%m', issue_date) AS INTEGER) AS month,
                   COUNT(*) AS issues,
                   SUM(CASE WHEN status = 'returned' THEN 1 ELSE 0 END) AS returns,
                   SUM(CASE WHEN status = 'overdue' THEN 1 ELSE 0 END) AS overdue
            FROM issues
            WHERE strftime('%Y', issue_date) = ?
            GROUP BY month
            ORDER BY month
        ''', (f'{int(year):04d}',)).fetchall()
        for row in rows:
            if row['month'] and 1 <= row['month'] <= 12:
                monthly[row['month'] - 1] = dict(row)
        return monthly

    @staticmethod
    def category_stats() -> List[Dict[str, Any]]:
        db = get_db()
        return rows_to_dicts(db.execute('''
            SELECT COALESCE(b.category, 'Uncategorized') AS category,
                   COUNT(DISTINCT b.id) AS book_count,
                   COUNT(i.id) AS borrow_count
            FROM books b
            LEFT JOIN issues i ON b.id = i.book_id
            GROUP BY b.category
            ORDER BY borrow_count DESC
        ''').fetchall())

    @staticmethod
    def yearly_stats() -> List[Dict[str, Any]]:
        """Totals for the five most recent years with loans."""
        db = get_db()
        return rows_to_dicts(db.execute('''
            SELECT CAST(strftime('%Y', issue_date) AS INTEGER) AS year,
                   COUNT(*) AS total_issues,
                   SUM(CASE WHEN status = 'returned' THEN 1 ELSE 0 END) AS total_returns,
                   COUNT(DISTINCT member_id) AS unique_borrowers,
                   COUNT(DISTINCT book_id) AS unique_books
            FROM issues
            GROUP BY year
            ORDER BY year DESC
            LIMIT 5
        ''').fetchall())
