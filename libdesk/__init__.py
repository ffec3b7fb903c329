"""LibDesk - library management backend and API client."""

__version__ = '2.0.0'
API_VERSION = '2.0'
