"""Book and member category lookups."""
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from libdesk.models.database import get_db

LEGACY_MEMBER_TYPES = {'student': 'guest'}


def normalize_member_type(member_type: Optional[str]) -> str:
    """Lower-case member type with the legacy ``student`` mapped to ``guest``."""
    value = str(member_type or '').strip().lower() or 'guest'
    return LEGACY_MEMBER_TYPES.get(value, value)


class BookCategory:
    """Named book category (Fiction, History, ...)."""

    @staticmethod
    def get_all() -> List[Dict[str, Any]]:
        """All categories ordered by name, or the built-in list for an empty table."""
        db = get_db()
        rows = db.execute('SELECT * FROM book_categories ORDER BY name').fetchall()
        if rows:
            return [dict(row) for row in rows]
        return [
            {'id': index, 'name': name}
            for index, (name, _description) in enumerate(
                current_app.config['DEFAULT_BOOK_CATEGORIES'], start=1)
        ]

    @staticmethod
    def create(name: str, description: Optional[str] = None) -> Tuple[Optional[int], str]:
        name = str(name or '').strip()
        if not name:
            return None, 'Category name is required'
        db = get_db()
        try:
            cursor = db.execute(
                'INSERT INTO book_categories (name, description) VALUES (?, ?)',
                (name, description or None)
            )
            db.commit()
        except sqlite3.IntegrityError:
            db.rollback()
            return None, 'Category already exists'
        return cursor.lastrowid, 'Category added'


class MemberCategory:
    """Borrowing rules per member type."""

    @staticmethod
    def get_all() -> List[Dict[str, Any]]:
        db = get_db()
        rows = db.execute('SELECT * FROM member_categories ORDER BY id').fetchall()
        if rows:
            return [dict(row) for row in rows]
        return [
            {'name': name, 'max_books': limits[0], 'loan_period_days': limits[1]}
            for name, limits in current_app.config['DEFAULT_MEMBER_CATEGORIES'].items()
        ]

    @staticmethod
    def resolve_limits(member_type: Optional[str]) -> Tuple[int, int]:
        """Return ``(max_books, loan_period_days)`` for a member type.

        Falls back to the configured defaults when the type is unknown.
        """
        name = normalize_member_type(member_type)
        db = get_db()
        row = db.execute(
            'SELECT max_books, loan_period_days FROM member_categories WHERE name = ?',
            (name,)
        ).fetchone()
        config = current_app.config
        if row:
            return (row['max_books'] or config['DEFAULT_MAX_BOOKS'],
                    row['loan_period_days'] or config['DEFAULT_LOAN_PERIOD_DAYS'])
        return config['DEFAULT_MAX_BOOKS'], config['DEFAULT_LOAN_PERIOD_DAYS']
