"""
Python client for the library API.

- api_service: HTTP calls, token handling and change signals
- providers: listener-based state holders built on the API service
- backup: backup files on disk
- backend_service: start/stop a local server process
"""
from libdesk.client.api_service import ApiService, data_changed, unauthorized
from libdesk.client.errors import (ApiError, RequestTimeoutError, ServerUnavailableError,
                                   SessionExpiredError)
from libdesk.client.storage import JsonPreferences, MemoryTokenStore, TokenStore

__all__ = [
    'ApiService',
    'data_changed',
    'unauthorized',
    'ApiError',
    'RequestTimeoutError',
    'ServerUnavailableError',
    'SessionExpiredError',
    'JsonPreferences',
    'MemoryTokenStore',
    'TokenStore',
]
