"""Authentication decorators and access-token helpers.

This module contains the decorator protecting API routes and the helpers
that issue and read the HS256 bearer tokens.
"""
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import current_app, g, jsonify, request
from jose import JWTError, jwt


def _signing_key() -> str:
    return current_app.config.get('JWT_SECRET') or current_app.config['SECRET_KEY']


def create_access_token(user_id: int, role: str) -> str:
    """Issue a signed token carrying the user's ``id`` and ``role``.

    Args:
        user_id: ID of the authenticated user.
        role: Role of the user ('admin').

    Returns:
        Encoded JWT valid for ``JWT_EXPIRES_IN`` seconds.

    Example:
        >>> token = create_access_token(1, 'admin')
    """
    expires = datetime.now(timezone.utc) + timedelta(seconds=current_app.config['JWT_EXPIRES_IN'])
    payload = {'id': user_id, 'role': role, 'exp': expires}
    return jwt.encode(payload, _signing_key(), algorithm=current_app.config['JWT_ALGORITHM'])


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token payload, or None when it is invalid or expired."""
    try:
        return jwt.decode(token, _signing_key(),
                          algorithms=[current_app.config['JWT_ALGORITHM']])
    except JWTError:
        return None


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def token_required(f: Callable) -> Callable:
    """Decorator to require a valid admin bearer token for a route.

    A missing token gives 401 ``Access denied``, an invalid or expired one
    403 ``Invalid token`` and a non-admin role 403 ``Forbidden``. The
    decoded ``{id, role}`` is stored on ``g.current_user``.

    Args:
        f: The view function to decorate.

    Returns:
        The decorated view.

    Example:
        @book_bp.route('/books')
        @token_required
        def list_books():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({'error': 'Access denied'}), 401

        payload = decode_access_token(token)
        if payload is None or 'id' not in payload:
            return jsonify({'error': 'Invalid token'}), 403
        if payload.get('role') != 'admin':
            return jsonify({'error': 'Forbidden'}), 403

        g.current_user = {'id': payload['id'], 'role': payload['role']}
        return f(*args, **kwargs)
    return decorated_function


def current_user_id() -> Optional[int]:
    user = g.get('current_user')
    return user['id'] if user else None
