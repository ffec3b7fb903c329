"""Whole-library backup, restore and tabular exports."""
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from libdesk import API_VERSION
from libdesk.models.database import get_db, rows_to_dicts

logger = logging.getLogger(__name__)

BACKUP_TABLES = ('books', 'members', 'issues')

EXPORT_QUERIES = {
    'books': '''
        SELECT id, isbn, title, author, rack_number, category, publisher, year_published,
               total_copies, available_copies, status, added_date
        FROM books ORDER BY id
    ''',
    'members': '''
        SELECT id, name, email, phone, member_type, membership_date, is_active
        FROM members ORDER BY id
    ''',
    'issues': '''
        SELECT i.id, b.title AS book_title, b.isbn, m.name AS member_name,
               i.issue_date, i.due_date, i.return_date, i.status
        FROM issues i
        JOIN books b ON i.book_id = b.id
        JOIN members m ON i.member_id = m.id
        ORDER BY i.id
    ''',
}


def _table_columns(db: sqlite3.Connection, table: str) -> List[str]:
    return [row['name'] for row in db.execute(f'PRAGMA table_info({table})').fetchall()]


class Backup:
    """Backup documents are ``{timestamp, version, data: {books, members, issues}}``."""

    @staticmethod
    def create() -> Dict[str, Any]:
        db = get_db()
        return {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'version': API_VERSION,
            'data': {
                table: rows_to_dicts(db.execute(f'SELECT * FROM {table}').fetchall())
                for table in BACKUP_TABLES
            },
        }

    @staticmethod
    def restore(data: Dict[str, Any], clear_existing: bool = False) -> Dict[str, int]:
        """Load a backup's ``data`` section.

        Tables are restored books first, then members, then issues. A table
        with rows in the backup is emptied first when ``clear_existing`` is
        set. Columns come from the first row, limited to the columns the
        table has. Rows that clash with existing ids or reference missing
        books or members are skipped.

        Args:
            data: Mapping of table name to a list of row dicts.
            clear_existing: Empty each restored table before inserting.

        Returns:
            Number of rows inserted per table.
        """
        db = get_db()
        restored = {table: 0 for table in BACKUP_TABLES}
        try:
            for table in BACKUP_TABLES:
                rows = [row for row in (data.get(table) or []) if isinstance(row, dict)]
                if not rows:
                    continue

                if clear_existing:
                    db.execute(f'DELETE FROM {table}')

                known = set(_table_columns(db, table))
                columns = [column for column in rows[0] if column in known]
                if not columns:
                    logger.warning('Backup rows for %s have no known columns', table)
                    continue

                sql = (f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) "
                       f"VALUES ({', '.join('?' for _ in columns)})")
                for row in rows:
                    try:
                        cursor = db.execute(sql, [row.get(column) for column in columns])
                    except sqlite3.IntegrityError as e:
                        logger.warning('Skipped %s row %s: %s', table, row.get('id'), e)
                        continue
                    restored[table] += cursor.rowcount
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info('Restored backup: %s', restored)
        return restored

    @staticmethod
    def export_rows(export_type: str) -> Optional[Tuple[List[str], List[Dict[str, Any]]]]:
        """Column names and rows for an export, or None for an unknown type."""
        sql = EXPORT_QUERIES.get(export_type)
        if sql is None:
            return None
        db = get_db()
        cursor = db.execute(sql)
        headers = [column[0] for column in cursor.description]
        return headers, rows_to_dicts(cursor.fetchall())
