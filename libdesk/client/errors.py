"""Exceptions raised by the API client."""
from typing import Any, Optional


class ApiError(Exception):
    """A request failed; ``status_code`` is None when no response arrived."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class SessionExpiredError(ApiError):
    def __init__(self, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__('Session expired. Please login again.', status_code, body)


class ServerUnavailableError(ApiError):
    def __init__(self, server_origin: str) -> None:
        super().__init__(
            f'Cannot connect to server. Make sure backend is running at {server_origin}'
        )


class RequestTimeoutError(ApiError):
    def __init__(self) -> None:
        super().__init__('Request timeout. Server is not responding.')
