"""Dashboard analytics and per-user layout settings."""
import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app

from libdesk.models.database import get_db, now_timestamp

logger = logging.getLogger(__name__)

ACTIVITY_CUTOFF_WIDGET = 'recent_activity_cutoff'

_ISSUE_ALERT_COLUMNS = '''
    SELECT i.id, i.book_id, i.member_id, i.issue_date, i.due_date, i.return_date, i.status,
           {days_overdue} AS days_overdue,
           b.title, b.author, b.cover_image,
           m.name AS member_name, m.email, m.phone, m.profile_photo
    FROM issues i
    JOIN books b ON i.book_id = b.id
    JOIN members m ON i.member_id = m.id
'''

_DAYS_OVERDUE = 'CAST(julianday(:today) - julianday(i.due_date) AS INTEGER)'

_SHELF_COUNT = "COALESCE(b.available_copies, CASE WHEN b.status = 'available' THEN 1 ELSE 0 END)"

_LAST_ISSUE_JOIN = '''
    FROM members m
    LEFT JOIN (
        SELECT member_id, MAX(issue_date) AS last_issue_date
        FROM issues
        GROUP BY member_id
    ) li ON li.member_id = m.id
    WHERE (m.is_active = 1 OR m.is_active IS NULL)
      AND (li.last_issue_date IS NULL OR li.last_issue_date < :since)
'''

_ACTIVITY_UNION = '''
    SELECT 'issue' AS type, i.id AS related_id, 'issue' AS related_type,
           datetime(COALESCE(i.issued_at, i.issue_date)) AS occurred_at,
           'Issued: ' || b.title AS title,
           m.name || ' borrowed "' || b.title || '"' AS description
    FROM issues i
    JOIN books b ON i.book_id = b.id
    JOIN members m ON i.member_id = m.id
    UNION ALL
    SELECT 'return', i.id, 'issue',
           datetime(COALESCE(i.returned_at, i.return_date)),
           'Returned: ' || b.title,
           m.name || ' returned "' || b.title || '"'
    FROM issues i
    JOIN books b ON i.book_id = b.id
    JOIN members m ON i.member_id = m.id
    WHERE i.return_date IS NOT NULL
    UNION ALL
    SELECT 'book_added', b.id, 'book',
           datetime(b.added_date),
           'New book: ' || b.title,
           '"' || b.title || '" by ' || b.author
    FROM books b
    UNION ALL
    SELECT 'member_added', m.id, 'member',
           datetime(COALESCE(m.created_at, m.membership_date)),
           'New member: ' || m.name,
           m.name || ' registered'
    FROM members m
'''


def _count_and_items(count_sql: str, items_sql: str, params: Dict[str, Any]) -> Dict[str, Any]:
    db = get_db()
    count = db.execute(count_sql, params).fetchone()[0]
    items = [dict(row) for row in db.execute(items_sql, params).fetchall()]
    return {'count': count, 'items': items}


class Dashboard:
    """Aggregate figures shown on the staff dashboard."""

    @staticmethod
    def get_stats() -> Dict[str, int]:
        """Catalogue, circulation and membership totals.

        ``available_books`` counts copies on the shelf and never goes
        below zero.
        """
        db = get_db()
        total_books = db.execute('SELECT COUNT(*) FROM books').fetchone()[0]
        total_copies = db.execute(
            'SELECT SUM(COALESCE(total_copies, 1)) FROM books'
        ).fetchone()[0]
        if total_copies is None:
            total_copies = total_books
        issued = db.execute(
            "SELECT COUNT(*) FROM issues WHERE status IN ('issued', 'overdue')"
        ).fetchone()[0]
        overdue = db.execute(
            "SELECT COUNT(*) FROM issues WHERE status = 'overdue'"
        ).fetchone()[0]
        active_members = db.execute(
            'SELECT COUNT(*) FROM members WHERE is_active = 1 OR is_active IS NULL'
        ).fetchone()[0]
        total_members = db.execute('SELECT COUNT(*) FROM members').fetchone()[0]

        return {
            'total_books': total_books,
            'total_copies': total_copies,
            'issued_books': issued,
            'available_books': max(total_copies - issued, 0),
            'overdue_books': overdue,
            'active_members': active_members,
            'total_members': total_members,
        }

    @staticmethod
    def get_alerts(overdue_days: int = 7, low_stock_threshold: int = 1,
                   inactive_days: int = 60, limit: int = 10) -> Dict[str, Any]:
        """Collect the dashboard alert groups and circulation KPIs.

        Args:
            overdue_days: Only loans overdue by more than this many days.
            low_stock_threshold: Books with at most this many copies on the shelf.
            inactive_days: Active members without a loan for this many days.
            limit: Items returned per group; ``count`` is always the full total.

        Returns:
            Dict with ``overdue``, ``dueToday``, ``dueTomorrow``, ``lowStock``,
            ``inactiveMembers`` and ``deactivatedMembers`` groups of
            ``{count, items}`` plus ``kpis``.
        """
        today = date.today()
        params = {
            'today': today.isoformat(),
            'tomorrow': (today + timedelta(days=1)).isoformat(),
            'since': (today - timedelta(days=inactive_days)).isoformat(),
            'overdue_days': overdue_days,
            'threshold': low_stock_threshold,
            'limit': limit,
        }

        overdue_where = f" WHERE i.status = 'overdue' AND {_DAYS_OVERDUE} > :overdue_days"
        due_today_where = " WHERE i.status IN ('issued', 'overdue') AND i.due_date = :today"
        due_tomorrow_where = " WHERE i.status = 'issued' AND i.due_date = :tomorrow"
        low_stock_where = f' WHERE {_SHELF_COUNT} <= :threshold'

        response: Dict[str, Any] = {
            'overdue': _count_and_items(
                'SELECT COUNT(*) FROM issues i' + overdue_where,
                _ISSUE_ALERT_COLUMNS.format(days_overdue=_DAYS_OVERDUE) + overdue_where
                + ' ORDER BY days_overdue DESC LIMIT :limit',
                params,
            ),
            'dueToday': _count_and_items(
                'SELECT COUNT(*) FROM issues i' + due_today_where,
                _ISSUE_ALERT_COLUMNS.format(days_overdue=_DAYS_OVERDUE) + due_today_where
                + ' ORDER BY i.status DESC, i.issue_date DESC LIMIT :limit',
                params,
            ),
            'dueTomorrow': _count_and_items(
                'SELECT COUNT(*) FROM issues i' + due_tomorrow_where,
                _ISSUE_ALERT_COLUMNS.format(days_overdue='0') + due_tomorrow_where
                + ' ORDER BY i.issue_date DESC LIMIT :limit',
                params,
            ),
            'lowStock': _count_and_items(
                'SELECT COUNT(*) FROM books b' + low_stock_where,
                'SELECT b.id, b.isbn, b.title, b.author, b.category, b.publisher, '
                'b.year_published, b.cover_image, b.total_copies, b.available_copies, b.status '
                'FROM books b' + low_stock_where
                + ' ORDER BY COALESCE(b.available_copies, 0) ASC, b.title ASC LIMIT :limit',
                params,
            ),
            'inactiveMembers': _count_and_items(
                'SELECT COUNT(*)' + _LAST_ISSUE_JOIN,
                'SELECT m.id, m.name, m.email, m.phone, m.member_type, m.profile_photo, '
                'm.is_active, li.last_issue_date' + _LAST_ISSUE_JOIN
                + ' ORDER BY (li.last_issue_date IS NULL) DESC, li.last_issue_date ASC'
                  ' LIMIT :limit',
                params,
            ),
            'deactivatedMembers': _count_and_items(
                'SELECT COUNT(*) FROM members WHERE is_active = 0',
                'SELECT id, name, email, phone, member_type, profile_photo, is_active, '
                'membership_date, expiry_date FROM members WHERE is_active = 0 '
                'ORDER BY name ASC LIMIT :limit',
                params,
            ),
        }
        response['kpis'] = Dashboard.get_kpis()
        return response

    @staticmethod
    def get_kpis() -> Dict[str, float]:
        db = get_db()
        total_copies = db.execute(
            'SELECT SUM(COALESCE(total_copies, 1)) FROM books'
        ).fetchone()[0] or 0
        issued = db.execute(
            "SELECT COUNT(*) FROM issues WHERE status IN ('issued', 'overdue')"
        ).fetchone()[0]
        avg_days = db.execute(
            'SELECT AVG(julianday(return_date) - julianday(issue_date)) '
            'FROM issues WHERE return_date IS NOT NULL'
        ).fetchone()[0]

        total = max(total_copies, 0)
        return {
            'utilization_rate': round(issued / total, 4) if total > 0 else 0,
            'availability_rate': round((total - issued) / total, 4) if total > 0 else 0,
            'avg_checkout_duration_days': round(avg_days, 2) if avg_days is not None else 0,
        }

    @staticmethod
    def get_activity_cutoff(user_id: int) -> Optional[str]:
        """Timestamp before which the user's activity feed is hidden."""
        db = get_db()
        row = db.execute(
            'SELECT settings FROM dashboard_settings WHERE user_id = ? AND widget_name = ? '
            'ORDER BY id DESC LIMIT 1',
            (user_id, ACTIVITY_CUTOFF_WIDGET)
        ).fetchone()
        if not row or not row['settings']:
            return None
        try:
            settings = json.loads(row['settings'])
        except ValueError:
            logger.warning('Ignoring malformed activity cutoff for user %s', user_id)
            return None
        return settings.get('hidden_before') if isinstance(settings, dict) else None

    @staticmethod
    def get_activity(user_id: Optional[int], limit: int = 25) -> List[Dict[str, Any]]:
        """Recent loans, returns, new books and new members, newest first.

        The feed is derived from the source tables, so it always reflects
        the current catalogue. Events before the user's cutoff are hidden.
        """
        hidden_before = Dashboard.get_activity_cutoff(user_id) if user_id else None
        sql = 'SELECT a.* FROM (' + _ACTIVITY_UNION + ') a'
        params: List[Any] = []
        if hidden_before:
            sql += ' WHERE a.occurred_at >= ?'
            params.append(hidden_before)
        sql += ' ORDER BY a.occurred_at DESC LIMIT ?'
        params.append(limit)

        db = get_db()
        return [dict(row) for row in db.execute(sql, params).fetchall()]

    @staticmethod
    def clear_activity(user_id: int) -> str:
        """Hide everything that happened up to now from the user's feed.

        Returns:
            The stored cutoff timestamp.
        """
        cutoff = now_timestamp()
        db = get_db()
        db.execute(
            'DELETE FROM dashboard_settings WHERE user_id = ? AND widget_name = ?',
            (user_id, ACTIVITY_CUTOFF_WIDGET)
        )
        db.execute(
            'INSERT INTO dashboard_settings (user_id, widget_name, is_visible, position, settings) '
            'VALUES (?, ?, 1, 0, ?)',
            (user_id, ACTIVITY_CUTOFF_WIDGET, json.dumps({'hidden_before': cutoff}))
        )
        db.commit()
        return cutoff

    @staticmethod
    def get_settings(user_id: int) -> List[Dict[str, Any]]:
        """The user's widget layout ordered by position, or the default layout."""
        db = get_db()
        rows = db.execute(
            'SELECT * FROM dashboard_settings WHERE user_id = ? AND widget_name <> ? '
            'ORDER BY position',
            (user_id, ACTIVITY_CUTOFF_WIDGET)
        ).fetchall()
        if not rows:
            return [
                {'widget_name': name, 'is_visible': True, 'position': index}
                for index, name in enumerate(current_app.config['DEFAULT_DASHBOARD_WIDGETS'])
            ]

        widgets = []
        for row in rows:
            widget = dict(row)
            widget['is_visible'] = bool(widget['is_visible'])
            try:
                widget['settings'] = json.loads(widget['settings']) if widget['settings'] else {}
            except ValueError:
                widget['settings'] = {}
            widgets.append(widget)
        return widgets

    @staticmethod
    def save_settings(user_id: int, widgets: List[Dict[str, Any]]) -> None:
        """Replace the user's widget layout; the activity cutoff is kept."""
        db = get_db()
        try:
            db.execute(
                'DELETE FROM dashboard_settings WHERE user_id = ? AND widget_name <> ?',
                (user_id, ACTIVITY_CUTOFF_WIDGET)
            )
            db.executemany(
                'INSERT INTO dashboard_settings (user_id, widget_name, is_visible, position, settings) '
                'VALUES (?, ?, ?, ?, ?)',
                [
                    (user_id, widget.get('widget_name'),
                     0 if widget.get('is_visible') is False else 1,
                     position, json.dumps(widget.get('settings') or {}))
                    for position, widget in enumerate(widgets or [])
                    if isinstance(widget, dict) and widget.get('widget_name')
                ]
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
