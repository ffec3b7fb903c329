"""Notification model for staff notifications.

This module handles creating, retrieving and managing notifications, and
generating the overdue / due-soon reminders from the issues table.
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app

from libdesk.models.database import get_db, now_timestamp
from libdesk.models.user import User
from libdesk.utils.date_formatter import format_date_indian

logger = logging.getLogger(__name__)


class Notification:
    """Represents a notification shown in the staff notification bell.

    Attributes:
        id: Notification identifier.
        user_id: ID of the admin receiving the notification.
        title: Notification title.
        message: Notification message content.
        type: Notification type ('overdue', 'due_soon', 'new_book', 'system', 'info').
        is_read: Whether the notification has been read.
        related_id: ID of the related issue or book.
        related_type: 'issue' or 'book'.
        created_at: When the notification was created.
    """

    def __init__(self, id: int, user_id: Optional[int], title: str, message: str,
                 type: str, is_read: int, related_id: Optional[int] = None,
                 related_type: Optional[str] = None, created_at: Optional[str] = None) -> None:
        """Initialize a Notification instance."""
        self.id = id
        self.user_id = user_id
        self.title = title
        self.message = message
        self.type = type
        self.is_read = bool(is_read)
        self.related_id = related_id
        self.related_type = related_type
        self.created_at = created_at

    @staticmethod
    def create(user_id: Optional[int], notification_type: str, title: str, message: str,
               related_id: Optional[int] = None,
               related_type: Optional[str] = None) -> Optional['Notification']:
        """Create a new notification."""
        if not title or not message:
            return None

        db = get_db()
        cursor = db.execute('''
            INSERT INTO notifications (user_id, title, message, type, is_read,
                                       related_id, related_type, created_at)
            VALUES (?, ?, ?, ?, 0, ?, ?, ?)
        ''', (user_id, title, message, notification_type, related_id, related_type,
              now_timestamp()))
        db.commit()

        return Notification.get_by_id(cursor.lastrowid)

    @staticmethod
    def notify_admin(notification_type: str, title: str, message: str,
                     related_id: Optional[int] = None,
                     related_type: Optional[str] = None) -> Optional['Notification']:
        """Create a notification for the first admin account, if there is one."""
        admin_id = User.get_first_admin_id()
        if admin_id is None:
            return None
        return Notification.create(admin_id, notification_type, title, message,
                                   related_id, related_type)

    @staticmethod
    def get_by_id(notification_id: int) -> Optional['Notification']:
        """Get notification by ID."""
        db = get_db()
        row = db.execute(
            'SELECT * FROM notifications WHERE id = ?',
            (notification_id,)
        ).fetchone()
        if row:
            return Notification(**dict(row))
        return None

    @staticmethod
    def get_recent(unread_only: bool = False, limit: int = 50) -> List['Notification']:
        """Get the newest notifications."""
        db = get_db()
        sql = 'SELECT * FROM notifications'
        if unread_only:
            sql += ' WHERE is_read = 0'
        sql += ' ORDER BY created_at DESC, id DESC LIMIT ?'
        rows = db.execute(sql, (limit,)).fetchall()
        return [Notification(**dict(row)) for row in rows]

    @staticmethod
    def get_unread_count() -> int:
        """Get count of unread notifications."""
        db = get_db()
        row = db.execute(
            'SELECT COUNT(*) AS count FROM notifications WHERE is_read = 0'
        ).fetchone()
        return row['count']

    @staticmethod
    def mark_as_read(notification_id: int) -> None:
        """Mark notification as read."""
        db = get_db()
        db.execute('UPDATE notifications SET is_read = 1 WHERE id = ?', (notification_id,))
        db.commit()

    @staticmethod
    def mark_all_as_read() -> None:
        """Mark every notification as read."""
        db = get_db()
        db.execute('UPDATE notifications SET is_read = 1')
        db.commit()

    @staticmethod
    def delete(notification_id: int) -> None:
        """Delete a notification."""
        db = get_db()
        db.execute('DELETE FROM notifications WHERE id = ?', (notification_id,))
        db.commit()

    @staticmethod
    def generate_due_notifications() -> int:
        """Create today's overdue and due-soon reminders.

        Each issue gets at most one notification of each type per day.
        Overdue issues must already carry the ``overdue`` status (see
        ``Issue.refresh_overdue_statuses``).

        Returns:
            Number of notifications created.
        """
        admin_id = User.get_first_admin_id()
        if admin_id is None:
            return 0

        db = get_db()
        today = date.today()
        soon = today + timedelta(days=current_app.config['DUE_SOON_DAYS'])
        not_notified_today = '''
            AND NOT EXISTS (
                SELECT 1 FROM notifications n
                WHERE n.related_id = i.id
                  AND n.related_type = 'issue'
                  AND n.type = ?
                  AND date(n.created_at) = ?
            )
        '''
        select = '''
            SELECT i.id, i.due_date, b.title, m.name AS member_name
            FROM issues i
            JOIN books b ON i.book_id = b.id
            JOIN members m ON i.member_id = m.id
        '''

        overdue = db.execute(
            select + " WHERE i.status = 'overdue'" + not_notified_today,
            ('overdue', today.isoformat())
        ).fetchall()
        due_soon = db.execute(
            select + " WHERE i.status = 'issued' AND i.due_date BETWEEN ? AND ?" + not_notified_today,
            (today.isoformat(), soon.isoformat(), 'due_soon', today.isoformat())
        ).fetchall()

        created = now_timestamp()
        pending = []
        for row in overdue:
            pending.append((
                admin_id,
                f"Overdue: {row['title']}",
                f"{row['member_name']} has not returned \"{row['title']}\" "
                f"which was due on {format_date_indian(row['due_date'])}",
                'overdue', row['id'], 'issue', created,
            ))
        for row in due_soon:
            pending.append((
                admin_id,
                f"Due Soon: {row['title']}",
                f"\"{row['title']}\" borrowed by {row['member_name']} "
                f"is due on {format_date_indian(row['due_date'])}",
                'due_soon', row['id'], 'issue', created,
            ))

        if pending:
            db.executemany('''
                INSERT INTO notifications (user_id, title, message, type,
                                           related_id, related_type, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', pending)
            db.commit()
            logger.info('Generated %d due-date notification(s)', len(pending))
        return len(pending)

    def to_dict(self) -> Dict[str, Any]:
        """Convert notification to dictionary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'is_read': self.is_read,
            'related_id': self.related_id,
            'related_type': self.related_type,
            'created_at': self.created_at,
        }
