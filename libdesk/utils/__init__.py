"""Utilities package for the library management system.

This package contains helper functions, decorators, and utilities
used across the application and the API client.
"""
from libdesk.utils.decorators import create_access_token, current_user_id, token_required

__all__ = [
    'create_access_token',
    'current_user_id',
    'token_required',
]
