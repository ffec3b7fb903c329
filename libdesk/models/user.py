"""User model module.

Library staff accounts. Only ``admin`` users may sign in to the API.
"""
from typing import Any, Dict, Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from libdesk.models.database import get_db


class User:
    """An account that can sign in to the library API.

    Attributes:
        id (int): Primary key.
        username (str): Unique login name.
        role (str): Account role; ``admin`` for library staff.
        password_hash (str): Werkzeug password hash.
        created_at (str): Creation timestamp.
    """

    def __init__(self, id: int, username: str, role: str,
                 password_hash: str = '', created_at: Optional[str] = None) -> None:
        self.id = id
        self.username = username
        self.role = role
        self.password_hash = password_hash
        self.created_at = created_at

    def is_admin(self) -> bool:
        return self.role == 'admin'

    def check_password(self, password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    @staticmethod
    def get_by_id(user_id: int) -> Optional['User']:
        db = get_db()
        row = db.execute('SELECT * FROM users WHERE id = ?', (user_id,)).fetchone()
        if row:
            return User(**dict(row))
        return None

    @staticmethod
    def get_by_username(username: str) -> Optional['User']:
        db = get_db()
        row = db.execute('SELECT * FROM users WHERE username = ?', (username,)).fetchone()
        if row:
            return User(**dict(row))
        return None

    @staticmethod
    def get_first_admin_id() -> Optional[int]:
        """ID of the first admin account; notifications are addressed to it."""
        db = get_db()
        row = db.execute(
            "SELECT id FROM users WHERE role = 'admin' ORDER BY id LIMIT 1"
        ).fetchone()
        return row['id'] if row else None

    @staticmethod
    def authenticate(username: str, password: str) -> Tuple[Optional['User'], int, str]:
        """Check a login attempt.

        The role is checked before the password so that non-admin accounts
        are told they cannot use the system at all.

        Args:
            username: Login name.
            password: Plain-text password.

        Returns:
            Tuple of (user or None, HTTP status, error message).
        """
        user = User.get_by_username(username)
        if not user:
            return None, 401, 'Invalid credentials'
        if not user.is_admin():
            return None, 403, 'Only admin users are allowed to access this system'
        if not user.check_password(password):
            return None, 401, 'Invalid credentials'
        return user, 200, ''

    @staticmethod
    def create(username: str, password: str, role: str = 'admin') -> Tuple[Optional['User'], str]:
        db = get_db()
        if User.get_by_username(username):
            return None, 'Username already exists'
        cursor = db.execute(
            'INSERT INTO users (username, password_hash, role) VALUES (?, ?, ?)',
            (username, generate_password_hash(password), role)
        )
        db.commit()
        return User.get_by_id(cursor.lastrowid), 'User created'

    @staticmethod
    def set_password(username: str, password: str) -> Tuple[bool, str]:
        """Replace the password of an existing account."""
        if not password:
            return False, 'Password must not be empty'
        db = get_db()
        cursor = db.execute(
            'UPDATE users SET password_hash = ? WHERE username = ?',
            (generate_password_hash(password), username)
        )
        db.commit()
        if cursor.rowcount == 0:
            return False, f"User '{username}' not found"
        return True, 'Password updated'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
        }
