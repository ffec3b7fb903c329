"""Authentication routes for the library management system.

This module handles staff login and the ``/me`` lookup used by the client
to validate a stored token.
"""
import logging

from flask import Blueprint, g, jsonify

from libdesk.models.user import User
from libdesk.utils.decorators import create_access_token, token_required
from libdesk.utils.request_helpers import get_json_body

logger = logging.getLogger(__name__)

# Create authentication blueprint
auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Exchange a username and password for a bearer token.

    Returns:
        ``{token, user}`` on success, an error with 400/401/403 otherwise.
    """
    body = get_json_body()
    username = body.get('username')
    password = body.get('password')
    if not isinstance(username, str) or not isinstance(password, str) or not username:
        return jsonify({'error': 'Invalid login request'}), 400

    user, status, message = User.authenticate(username.strip(), password)
    if user is None:
        logger.info("Rejected login for '%s' (%d)", username, status)
        return jsonify({'error': message}), status

    token = create_access_token(user.id, user.role)
    logger.info("User '%s' signed in", user.username)
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/auth/me', methods=['GET'])
@token_required
def me():
    user = User.get_by_id(g.current_user['id'])
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'user': user.to_dict()})
