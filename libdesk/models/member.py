"""Member model module.

Library members (guests, faculty and staff) who borrow books.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from libdesk.models.category import normalize_member_type
from libdesk.models.database import get_db, now_timestamp


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # 29 February
        return start.replace(year=start.year + years, day=28)


class Member:
    """Represents a library member.

    Attributes:
        id (int): Primary key.
        name (str): Full name.
        email (str): Email address.
        phone (str): Phone number.
        member_type (str): 'guest', 'faculty' or 'staff'.
        profile_photo (str): Photo URL.
        address (str): Postal address.
        membership_date (str): Date the membership started.
        expiry_date (str): Date the membership ends.
        is_active (bool): False once the member has been deactivated.
        created_at (str): Creation timestamp.
    """

    def __init__(self, id: int, name: str, email: Optional[str] = None,
                 phone: Optional[str] = None, member_type: str = 'guest',
                 profile_photo: Optional[str] = None, address: Optional[str] = None,
                 membership_date: Optional[str] = None, expiry_date: Optional[str] = None,
                 is_active: Optional[int] = 1, created_at: Optional[str] = None) -> None:
        self.id = id
        self.name = name
        self.email = email
        self.phone = phone
        self.member_type = member_type
        self.profile_photo = profile_photo
        self.address = address
        self.membership_date = membership_date
        self.expiry_date = expiry_date
        self.is_active = is_active is None or bool(is_active)
        self.created_at = created_at

    @staticmethod
    def get_by_id(member_id: int) -> Optional['Member']:
        db = get_db()
        row = db.execute('SELECT * FROM members WHERE id = ?', (member_id,)).fetchone()
        if row:
            return Member(**dict(row))
        return None

    @staticmethod
    def search_page(filters: Dict[str, Any], limit: int,
                    offset: int) -> Tuple[List[Dict[str, Any]], int]:
        """Filter members by ``search``, ``type`` and ``active``; ordered by name.

        Returns:
            Tuple of (rows for the page, total matching rows).
        """
        where = ' WHERE 1=1'
        params: List[Any] = []

        if filters.get('search'):
            where += ' AND (name LIKE ? OR email LIKE ? OR phone LIKE ?)'
            term = f"%{filters['search']}%"
            params.extend([term, term, term])
        if filters.get('type'):
            where += ' AND member_type = ?'
            params.append(filters['type'])
        if filters.get('active') not in (None, ''):
            where += ' AND (is_active = ? OR is_active IS NULL)'
            params.append(1 if filters['active'] == 'true' else 0)

        db = get_db()
        total = db.execute('SELECT COUNT(*) FROM members' + where, params).fetchone()[0]
        rows = db.execute(
            'SELECT * FROM members' + where + ' ORDER BY name ASC LIMIT ? OFFSET ?',
            params + [limit, offset]
        ).fetchall()
        return [dict(row) for row in rows], total

    @staticmethod
    def create(data: Dict[str, Any]) -> Tuple[Optional[int], str]:
        """Register a member.

        Args:
            data: Request body; ``name`` is required.

        Returns:
            Tuple of (new member id or None, message).
        """
        name = str(data.get('name') or '').strip()
        if not name:
            return None, 'Name is required'

        membership_date = data.get('membership_date') or date.today().isoformat()
        expiry_date = data.get('expiry_date')
        if not expiry_date:
            try:
                start = date.fromisoformat(str(membership_date)[:10])
            except ValueError:
                start = date.today()
            expiry_date = _add_years(start, current_app.config['MEMBERSHIP_YEARS']).isoformat()

        db = get_db()
        cursor = db.execute('''
            INSERT INTO members (name, email, phone, member_type, membership_date,
                                 profile_photo, address, expiry_date, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
        ''', (
            name,
            data.get('email') or None,
            data.get('phone') or None,
            normalize_member_type(data.get('member_type')),
            membership_date,
            data.get('profile_photo') or None,
            data.get('address') or None,
            expiry_date,
            now_timestamp(),
        ))
        db.commit()
        return cursor.lastrowid, 'Member added'

    def update(self, body: Dict[str, Any]) -> None:
        """Merge a partial update into this member.

        Keys may be snake_case or camelCase. ``email`` and ``address`` are
        cleared by an empty value; an empty ``expiry_date`` keeps the current
        one. ``is_active`` only becomes false for an explicit ``false``.
        """
        name = body.get('name')
        if name is not None and str(name).strip():
            self.name = str(name).strip()
        if 'email' in body:
            self.email = body['email'] or None
        if body.get('phone') is not None:
            self.phone = body['phone'] or None
        member_type = _first_set(body.get('member_type'), body.get('memberType'))
        if member_type is not None:
            self.member_type = normalize_member_type(member_type)
        self.membership_date = _first_set(body.get('membership_date'),
                                          body.get('membershipDate'), self.membership_date)
        photo = _first_set(body.get('profile_photo'), body.get('profilePhoto'))
        if photo is not None:
            self.profile_photo = photo or None
        if 'address' in body:
            self.address = body['address'] or None
        expiry_date = _first_set(body.get('expiry_date'), body.get('expiryDate'))
        if expiry_date:
            self.expiry_date = expiry_date
        is_active = _first_set(body.get('is_active'), body.get('isActive'))
        if is_active is not None:
            self.is_active = is_active is not False

        db = get_db()
        db.execute('''
            UPDATE members
            SET name = ?, email = ?, phone = ?, member_type = ?, membership_date = ?,
                profile_photo = ?, address = ?, expiry_date = ?, is_active = ?
            WHERE id = ?
        ''', (self.name, self.email, self.phone, self.member_type, self.membership_date,
              self.profile_photo, self.address, self.expiry_date, int(self.is_active),
              self.id))
        db.commit()

    def set_active(self, active: bool) -> None:
        db = get_db()
        db.execute('UPDATE members SET is_active = ? WHERE id = ?', (int(active), self.id))
        db.commit()
        self.is_active = active

    def set_photo(self, url: str) -> Optional[str]:
        """Store a new photo URL and return the previous one."""
        previous = self.profile_photo
        db = get_db()
        db.execute('UPDATE members SET profile_photo = ? WHERE id = ?', (url, self.id))
        db.commit()
        self.profile_photo = url
        return previous

    def delete(self) -> None:
        db = get_db()
        db.execute('DELETE FROM members WHERE id = ?', (self.id,))
        db.commit()

    @staticmethod
    def bulk_delete(member_ids: List[int]) -> int:
        db = get_db()
        placeholders = ','.join('?' for _ in member_ids)
        cursor = db.execute(f'DELETE FROM members WHERE id IN ({placeholders})', member_ids)
        db.commit()
        return cursor.rowcount

    def count_active_issues(self) -> int:
        db = get_db()
        row = db.execute(
            "SELECT COUNT(*) FROM issues WHERE member_id = ? AND status IN ('issued', 'overdue')",
            (self.id,)
        ).fetchone()
        return row[0]

    def get_history(self) -> List[Dict[str, Any]]:
        """Every issue of this member, newest first, with book details."""
        db = get_db()
        rows = db.execute('''
            SELECT i.*, b.title, b.author, b.isbn, b.category, b.cover_image
            FROM issues i
            JOIN books b ON i.book_id = b.id
            WHERE i.member_id = ?
            ORDER BY i.issue_date DESC, i.id DESC
        ''', (self.id,)).fetchall()
        return [dict(row) for row in rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'member_type': self.member_type,
            'profile_photo': self.profile_photo,
            'address': self.address,
            'membership_date': self.membership_date,
            'expiry_date': self.expiry_date,
            'is_active': self.is_active,
            'created_at': self.created_at,
        }
