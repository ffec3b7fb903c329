"""HTTP client for the library API.

Every call goes through ``ApiService._request``, which adds the bearer
token, applies the timeout and turns transport failures and error
responses into ``ApiError`` subclasses. Two blinker signals let the
rest of the client react to server-side changes:

    data_changed: sent after every successful mutation.
    unauthorized: sent when the server rejects the token (401/403).
"""
import dataclasses
import logging
import mimetypes
import os
import time
from typing import Any, Dict, List, Optional

import requests
from blinker import Namespace

from libdesk.client.errors import (ApiError, RequestTimeoutError, ServerUnavailableError,
                                   SessionExpiredError)
from libdesk.client.models import (ActiveMember, AppNotification, Book, BookCategory,
                                   CategoryStats, DashboardWidget, Issue, Member,
                                   MemberCategory, MonthlyStats, Page, Pagination,
                                   PopularBook, User, YearlyStats, as_int)
from libdesk.client.storage import TokenStore

logger = logging.getLogger(__name__)

_signals = Namespace()
data_changed = _signals.signal('data-changed')
unauthorized = _signals.signal('unauthorized')

DEFAULT_BASE_URL = 'http://localhost:3000/api'
DEFAULT_SERVER_ORIGIN = 'http://localhost:3000'
DEFAULT_TIMEOUT = 10
BACKUP_TIMEOUT = 60
EXPORT_TIMEOUT = 30
UPLOAD_TIMEOUT = 30
IMPORT_TIMEOUT = 120
CATEGORIES_TTL = 300.0
FETCH_ALL_LIMIT = 1000

DEFAULT_BOOK_CATEGORIES = (
    'Fiction', 'Non-Fiction', 'Science', 'History', 'Biography',
    'Technology', 'Computer Science', 'Literature', 'Philosophy',
)

DEFAULT_MEMBER_CATEGORIES = (
    MemberCategory(id=1, name='guest', max_books=3, loan_period_days=14),
    MemberCategory(id=2, name='faculty', max_books=10, loan_period_days=30),
    MemberCategory(id=3, name='staff', max_books=5, loan_period_days=21),
)

DEFAULT_DASHBOARD_WIDGETS = (
    'stats_cards', 'charts', 'recent_issues', 'popular_books', 'overdue_alerts', 'quick_actions',
)

IMPORT_CONTENT_TYPES = {
    '.csv': 'text/csv',
    '.xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    '.xls': 'application/vnd.ms-excel',
}


def default_dashboard_widgets() -> List[DashboardWidget]:
    return [DashboardWidget(name=name, is_visible=True, position=index)
            for index, name in enumerate(DEFAULT_DASHBOARD_WIDGETS)]


def guess_image_media_type(filename: str) -> str:
    """Image media type for an upload; unknown extensions are sent as JPEG."""
    media_type, _ = mimetypes.guess_type(filename.lower())
    if media_type and media_type.startswith('image/'):
        return media_type
    return 'image/jpeg'


def _query(**params: Any) -> Dict[str, Any]:
    """Drop unset filters; booleans become ``true``/``false``."""
    query = {}
    for key, value in params.items():
        if value is None or value == '':
            continue
        query[key] = str(value).lower() if isinstance(value, bool) else value
    return query


class ApiService:
    """Client for the library REST API.

    Args:
        base_url: API root, e.g. ``http://localhost:3000/api``.
        server_origin: Origin serving ``/uploads`` and ``/``.
        timeout: Default request timeout in seconds.
        token_store: Where the access token is kept.
        session: Optional ``requests.Session`` (or compatible) to send with.
    """

    data_changed = data_changed
    unauthorized = unauthorized

    def __init__(self, base_url: Optional[str] = None, server_origin: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, token_store=None, session=None) -> None:
        self.base_url = (base_url or os.environ.get('LIBDESK_API_BASE_URL')
                         or DEFAULT_BASE_URL).rstrip('/')
        self.server_origin = (server_origin or os.environ.get('LIBDESK_SERVER_ORIGIN')
                              or DEFAULT_SERVER_ORIGIN).rstrip('/')
        self.timeout = timeout
        self.token_store = token_store if token_store is not None else TokenStore()
        self.session = session if session is not None else requests.Session()
        self._categories: Optional[List[BookCategory]] = None
        self._categories_fetched_at = 0.0

    # ==================== TOKEN ====================

    def get_token(self) -> Optional[str]:
        return self.token_store.read()

    def set_token(self, token: str) -> None:
        self.token_store.write(token)

    def clear_token(self) -> None:
        self.token_store.delete()

    def headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'} if json_body else {}
        token = self.get_token()
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def resolve_public_url(self, url_or_path: str) -> str:
        """Absolute URL for an upload path such as ``/uploads/x.png``."""
        if url_or_path.startswith(('http://', 'https://')):
            return url_or_path
        if url_or_path.startswith('/'):
            return f'{self.server_origin}{url_or_path}'
        return f'{self.server_origin}/{url_or_path}'

    # ==================== TRANSPORT ====================

    @staticmethod
    def _decode(response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def _notify_data_changed(self) -> None:
        self.data_changed.send(self)

    def _request(self, method: str, path: str, action: str, *, timeout: Optional[float] = None,
                 raw: bool = False, session_check: bool = True, **kwargs) -> Any:
        """Send one request and return the decoded body.

        Args:
            method: HTTP method.
            path: Path below ``base_url``.
            action: Used in fallback error messages: ``Failed to <action>``.
            timeout: Overrides the default timeout.
            raw: Return the response object instead of the decoded body.
            session_check: Treat 401/403 as an expired session.
            **kwargs: Passed to ``session.request`` (params, json, files, data).

        Raises:
            ServerUnavailableError: The server could not be reached.
            RequestTimeoutError: No answer within the timeout.
            SessionExpiredError: The token was rejected.
            ApiError: Any other non-2xx response.
        """
        url = f'{self.base_url}{path}'
        headers = self.headers(json_body='files' not in kwargs)
        logger.debug('%s %s', method, url)
        try:
            response = self.session.request(method, url, headers=headers,
                                            timeout=timeout or self.timeout, **kwargs)
        except requests.Timeout as e:
            logger.debug('Timeout on %s %s: %s', method, url, e)
            raise RequestTimeoutError() from e
        except requests.ConnectionError as e:
            logger.debug('Connection error on %s %s: %s', method, url, e)
            raise ServerUnavailableError(self.server_origin) from e

        logger.debug('%s %s -> %s', method, url, response.status_code)
        if session_check and response.status_code in (401, 403):
            self.clear_token()
            self.unauthorized.send(self)
            raise SessionExpiredError(response.status_code, self._decode(response))

        if not 200 <= response.status_code < 300:
            body = self._decode(response)
            if isinstance(body, dict) and body.get('error'):
                message = str(body['error'])
            else:
                message = f'Failed to {action}: {response.status_code} - {response.text}'
            raise ApiError(message, response.status_code, body)

        return response if raw else self._decode(response)

    def _get_all_pages(self, path: str, action: str,
                       params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Follow ``page=1..`` until ``hasMore`` is false; plain lists pass through."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = self._request('GET', path, action,
                                 params={**(params or {}), 'page': page, 'limit': FETCH_ALL_LIMIT})
            if isinstance(body, list):
                return body
            items.extend(body.get('data') or [])
            if not (body.get('pagination') or {}).get('hasMore'):
                return items
            page += 1

    def _upload(self, path: str, field_name: str, data: bytes, filename: str,
                content_type: str, action: str, form: Optional[Dict[str, Any]] = None,
                timeout: float = UPLOAD_TIMEOUT) -> Any:
        return self._request('POST', path, action, timeout=timeout,
                             files={field_name: (filename, data, content_type)},
                             data=form or {})

    # ==================== AUTH ====================

    def test_connection(self) -> bool:
        """True when the server origin answers (200 or 404)."""
        try:
            response = self.session.get(self.server_origin, headers=self.headers(),
                                        timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug('Connection test failed: %s', e)
            return False
        return response.status_code in (200, 404)

    def login(self, username: str, password: str) -> User:
        body = self._request('POST', '/auth/login', 'login', session_check=False,
                             json={'username': username, 'password': password})
        self.set_token(body['token'])
        return User.from_json(body['user'])

    def logout(self) -> None:
        self.clear_token()

    def get_me(self) -> User:
        body = self._request('GET', '/auth/me', 'load current user')
        return User.from_json(body['user'])

    # ==================== BOOKS ====================

    def get_books(self, search: Optional[str] = None, category: Optional[str] = None,
                  author: Optional[str] = None, year: Optional[int] = None,
                  status: Optional[str] = None, available: Optional[bool] = None) -> List[Book]:
        params = _query(search=search, category=category, author=author, year=year,
                        status=status, available=True if available else None)
        rows = self._get_all_pages('/books', 'load books', params)
        return [Book.from_json(row) for row in rows]

    def get_book(self, book_id: int) -> Book:
        return Book.from_json(self._request('GET', f'/books/{book_id}', 'load book'))

    def add_book(self, book: Book) -> Book:
        body = self._request('POST', '/books', 'add book', json=book.to_json())
        self._notify_data_changed()
        return dataclasses.replace(book, id=as_int(body.get('id')))

    def update_book(self, book_id: int, book: Book) -> None:
        self._request('PUT', f'/books/{book_id}', 'update book', json=book.to_json())
        self._notify_data_changed()

    def delete_book(self, book_id: int) -> None:
        self._request('DELETE', f'/books/{book_id}', 'delete book')
        self._notify_data_changed()

    def bulk_delete_books(self, ids: List[int]) -> Dict[str, Any]:
        body = self._request('POST', '/books/bulk-delete', 'delete books', json={'ids': ids})
        self._notify_data_changed()
        return body

    def import_books_file(self, file_path: str, field_name: str = 'file') -> Dict[str, Any]:
        """Upload a ``.csv``/``.xlsx`` file to the import endpoint."""
        filename = os.path.basename(file_path) or 'books_import'
        extension = os.path.splitext(filename)[1].lower()
        with open(file_path, 'rb') as f:
            data = f.read()
        body = self._upload('/books/import', field_name, data, filename,
                            IMPORT_CONTENT_TYPES.get(extension, 'application/octet-stream'),
                            'import books', timeout=IMPORT_TIMEOUT)
        self._notify_data_changed()
        return body if isinstance(body, dict) else {'ok': True, 'data': body}

    # ==================== CATEGORIES ====================

    def get_categories(self) -> List[BookCategory]:
        """Book categories, cached for five minutes; defaults when unreachable."""
        now = time.monotonic()
        if self._categories is not None and now - self._categories_fetched_at < CATEGORIES_TTL:
            return list(self._categories)
        try:
            rows = self._request('GET', '/categories', 'load categories')
        except ApiError as e:
            logger.warning('Using default categories: %s', e)
            return [BookCategory(id=index, name=name)
                    for index, name in enumerate(DEFAULT_BOOK_CATEGORIES, start=1)]
        self._categories = [BookCategory.from_json(row) for row in rows]
        self._categories_fetched_at = now
        return list(self._categories)

    def add_category(self, name: str, description: Optional[str] = None) -> None:
        self._request('POST', '/categories', 'add category',
                      json={'name': name, 'description': description})
        self._categories = None
        self._notify_data_changed()

    # ==================== MEMBERS ====================

    def get_members(self, search: Optional[str] = None, type: Optional[str] = None,
                    active: Optional[bool] = None) -> List[Member]:
        params = _query(search=search, type=type, active=active)
        rows = self._get_all_pages('/members', 'load members', params)
        return [Member.from_json(row) for row in rows]

    def get_members_page(self, page: int = 1, limit: int = 100, search: Optional[str] = None,
                         type: Optional[str] = None,
                         active: Optional[bool] = None) -> Page[Member]:
        params = _query(search=search, type=type, active=active, page=page, limit=limit)
        body = self._request('GET', '/members', 'load members', params=params)
        if isinstance(body, list):
            members = [Member.from_json(row) for row in body]
            return Page(items=members, pagination=Pagination(
                page=1, limit=len(members), total=len(members),
                total_pages=1 if members else 0, has_more=False))
        return Page(items=[Member.from_json(row) for row in body.get('data') or []],
                    pagination=Pagination.from_json(body.get('pagination') or {}))

    def get_member(self, member_id: int) -> Member:
        return Member.from_json(self._request('GET', f'/members/{member_id}', 'load member'))

    def add_member(self, member: Member) -> Member:
        body = self._request('POST', '/members', 'add member', json=member.to_json())
        self._notify_data_changed()
        return dataclasses.replace(member, id=as_int(body.get('id')))

    def update_member(self, member_id: int, member: Member) -> None:
        self._request('PUT', f'/members/{member_id}', 'update member', json=member.to_json())
        self._notify_data_changed()

    def delete_member(self, member_id: int) -> None:
        self._request('DELETE', f'/members/{member_id}', 'delete member')
        self._notify_data_changed()

    def bulk_delete_members(self, ids: List[int]) -> Dict[str, Any]:
        body = self._request('POST', '/members/bulk-delete', 'delete members', json={'ids': ids})
        self._notify_data_changed()
        return body

    def deactivate_member(self, member_id: int) -> None:
        self._request('PUT', f'/members/{member_id}/deactivate', 'deactivate member')
        self._notify_data_changed()

    def activate_member(self, member_id: int) -> None:
        self._request('PUT', f'/members/{member_id}/activate', 'activate member')
        self._notify_data_changed()

    def get_member_history(self, member_id: int) -> List[Issue]:
        return self.get_issues(member_id=member_id)

    def get_member_categories(self) -> List[MemberCategory]:
        try:
            rows = self._request('GET', '/member-categories', 'load member categories')
        except ApiError as e:
            logger.warning('Using default member categories: %s', e)
            return list(DEFAULT_MEMBER_CATEGORIES)
        return [MemberCategory.from_json(row) for row in rows]

    # ==================== ISSUES ====================

    def get_issues(self, member_id: Optional[int] = None, book_id: Optional[int] = None,
                   status: Optional[str] = None) -> List[Issue]:
        params = _query(member_id=member_id, book_id=book_id, status=status)
        rows = self._get_all_pages('/issues', 'load issues', params)
        return [Issue.from_json(row) for row in rows]

    def issue_book(self, book_id: int, member_id: int, due_date: Optional[str] = None,
                   notes: Optional[str] = None) -> int:
        payload: Dict[str, Any] = {'book_id': book_id, 'member_id': member_id}
        if due_date:
            payload['due_date'] = due_date
        if notes:
            payload['notes'] = notes
        body = self._request('POST', '/issues', 'issue book', json=payload)
        self._notify_data_changed()
        return as_int(body.get('id'))

    def return_book(self, issue_id: int) -> None:
        self._request('PUT', f'/issues/{issue_id}/return', 'return book')
        self._notify_data_changed()

    def update_issue(self, issue_id: int, due_date: Optional[str] = None,
                     return_date: Optional[str] = None, status: Optional[str] = None) -> None:
        payload = _query(due_date=due_date, return_date=return_date, status=status)
        self._request('PUT', f'/issues/{issue_id}', 'update issue', json=payload)
        self._notify_data_changed()

    def remind_issue(self, issue_id: int) -> None:
        self._request('POST', f'/issues/{issue_id}/remind', 'send reminder')

    def bulk_delete_issues(self, ids: List[int]) -> Dict[str, Any]:
        body = self._request('POST', '/issues/bulk-delete', 'delete issues', json={'ids': ids})
        self._notify_data_changed()
        return body

    # ==================== DASHBOARD ====================

    def get_dashboard_stats(self) -> Dict[str, int]:
        body = self._request('GET', '/dashboard/stats', 'load dashboard stats')
        return {key: as_int(value) for key, value in body.items()}

    def get_dashboard_settings(self, user_id: int) -> List[DashboardWidget]:
        try:
            rows = self._request('GET', f'/dashboard/settings/{user_id}',
                                 'load dashboard settings')
        except ApiError as e:
            logger.warning('Using default dashboard layout: %s', e)
            return default_dashboard_widgets()
        return [DashboardWidget.from_json(row) for row in rows]

    def save_dashboard_settings(self, user_id: int, widgets: List[DashboardWidget]) -> None:
        self._request('PUT', f'/dashboard/settings/{user_id}', 'save dashboard settings',
                      json={'widgets': [widget.to_json() for widget in widgets]})

    def get_dashboard_alerts(self, limit: int = 10, overdue_days: int = 7,
                             low_stock_threshold: int = 1,
                             inactive_days: int = 60) -> Dict[str, Any]:
        return self._request('GET', '/dashboard/alerts', 'load dashboard alerts', params={
            'limit': limit,
            'overdue_days': overdue_days,
            'low_stock_threshold': low_stock_threshold,
            'inactive_days': inactive_days,
        })

    def get_dashboard_activity(self, limit: int = 25) -> List[Dict[str, Any]]:
        return self._request('GET', '/dashboard/activity', 'load dashboard activity',
                             params={'limit': limit})

    def clear_dashboard_activity(self) -> None:
        self._request('POST', '/dashboard/activity/clear', 'clear activity')

    # ==================== REPORTS ====================

    def get_issued_report(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/reports/issued', 'load issued report')

    def get_overdue_report(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/reports/overdue', 'load overdue report')

    def get_popular_books(self, limit: int = 10, period: Optional[str] = None) -> List[PopularBook]:
        rows = self._request('GET', '/reports/popular-books', 'load popular books',
                             params=_query(limit=limit, period=period))
        return [PopularBook.from_json(row) for row in rows]

    def get_active_members(self, limit: int = 10,
                           period: Optional[str] = None) -> List[ActiveMember]:
        rows = self._request('GET', '/reports/active-members', 'load active members',
                             params=_query(limit=limit, period=period))
        return [ActiveMember.from_json(row) for row in rows]

    def get_monthly_stats(self, year: Optional[int] = None) -> List[MonthlyStats]:
        rows = self._request('GET', '/reports/monthly-stats', 'load monthly stats',
                             params=_query(year=year))
        return [MonthlyStats.from_json(row) for row in rows]

    def get_category_stats(self) -> List[CategoryStats]:
        rows = self._request('GET', '/reports/category-stats', 'load category stats')
        return [CategoryStats.from_json(row) for row in rows]

    def get_yearly_stats(self) -> List[YearlyStats]:
        rows = self._request('GET', '/reports/yearly-stats', 'load yearly stats')
        return [YearlyStats.from_json(row) for row in rows]

    # ==================== NOTIFICATIONS ====================

    def get_notifications(self, unread_only: bool = False,
                          limit: int = 50) -> List[AppNotification]:
        params: Dict[str, Any] = {'limit': limit}
        if unread_only:
            params['unread_only'] = 'true'
        try:
            rows = self._request('GET', '/notifications', 'load notifications', params=params)
        except ApiError as e:
            logger.warning('Could not load notifications: %s', e)
            return []
        return [AppNotification.from_json(row) for row in rows]

    def get_unread_notification_count(self) -> int:
        try:
            body = self._request('GET', '/notifications/count', 'load notification count')
        except ApiError as e:
            logger.warning('Could not load notification count: %s', e)
            return 0
        return as_int(body.get('count')) if isinstance(body, dict) else 0

    def mark_notification_as_read(self, notification_id: int) -> None:
        self._request('PUT', f'/notifications/{notification_id}/read', 'mark notification read')

    def mark_all_notifications_as_read(self) -> None:
        self._request('PUT', '/notifications/read-all', 'mark notifications read')

    def delete_notification(self, notification_id: int) -> None:
        try:
            self._request('DELETE', f'/notifications/{notification_id}', 'delete notification')
        except ApiError as e:
            logger.warning('Could not delete notification %s: %s', notification_id, e)

    # ==================== SEARCH ====================

    def advanced_search(self, query: Optional[str] = None, category: Optional[str] = None,
                        author: Optional[str] = None, year_from: Optional[int] = None,
                        year_to: Optional[int] = None, status: Optional[str] = None,
                        member_type: Optional[str] = None) -> Dict[str, List[Any]]:
        params = _query(q=query, category=category, author=author, year_from=year_from,
                        year_to=year_to, status=status, member_type=member_type)
        body = self._request('GET', '/search', 'search', params=params)
        return {
            'books': [Book.from_json(row) for row in body.get('books') or []],
            'members': [Member.from_json(row) for row in body.get('members') or []],
            'issues': [Issue.from_json(row) for row in body.get('issues') or []],
        }

    def get_recommendations(self, member_id: int) -> List[Book]:
        try:
            rows = self._request('GET', f'/recommendations/{member_id}',
                                 'load recommendations')
        except ApiError as e:
            logger.warning('Could not load recommendations: %s', e)
            return []
        return [Book.from_json(row) for row in rows]

    # ==================== BACKUP & EXPORT ====================

    def get_backup(self) -> Dict[str, Any]:
        return self._request('GET', '/backup', 'create backup', timeout=BACKUP_TIMEOUT)

    def restore_backup(self, backup: Dict[str, Any], clear_existing: bool = False) -> Dict[str, Any]:
        """Post the ``data`` section of a backup document to the server."""
        body = self._request('POST', '/restore', 'restore backup', timeout=BACKUP_TIMEOUT,
                             json={'data': backup.get('data'), 'clear_existing': clear_existing})
        self._notify_data_changed()
        return body

    def export_data(self, export_type: str, format: str = 'json') -> bytes:
        response = self._request('GET', f'/export/{export_type}', 'export data',
                                 timeout=EXPORT_TIMEOUT, raw=True, params={'format': format})
        return response.content

    # ==================== UPLOADS ====================

    def upload_book_cover(self, data: bytes, filename: str,
                          book_id: Optional[int] = None) -> Optional[str]:
        form = {'book_id': book_id} if book_id else None
        body = self._upload('/uploads/book-cover', 'cover', data, filename,
                            guess_image_media_type(filename), 'upload cover image', form)
        if book_id:
            self._notify_data_changed()
        return body.get('url') if isinstance(body, dict) else None

    def upload_member_photo(self, data: bytes, filename: str,
                            member_id: Optional[int] = None) -> Optional[str]:
        form = {'member_id': member_id} if member_id else None
        body = self._upload('/uploads/member-photo', 'photo', data, filename,
                            guess_image_media_type(filename), 'upload member photo', form)
        if member_id:
            self._notify_data_changed()
        return body.get('url') if isinstance(body, dict) else None
