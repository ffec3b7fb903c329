"""State holders for a client front end.

Each provider wraps ``ApiService`` calls, keeps the last result and tells
its listeners when something changed. Listeners are plain callables with
no arguments.
"""
import dataclasses
import logging
import os
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from libdesk.client.api_service import ApiService, default_dashboard_widgets
from libdesk.client.errors import ApiError
from libdesk.client.models import (ActiveMember, AppNotification, Book, CategoryStats,
                                   DashboardWidget, Issue, Member, MonthlyStats, PopularBook,
                                   User)
from libdesk.client.storage import JsonPreferences
from libdesk.utils.exporters import export_report, report_filename

logger = logging.getLogger(__name__)

Listener = Callable[[], None]

NOTIFICATION_POLL_SECONDS = 10
MEMBER_PAGE_SIZE = 100


class ChangeNotifier:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener()


class AuthProvider(ChangeNotifier):
    """Signed-in admin user; cleared when the server rejects the token."""

    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.user: Optional[User] = None
        self.is_loading = False
        api.unauthorized.connect(self._on_unauthorized, sender=api)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _on_unauthorized(self, sender, **kwargs) -> None:
        self.user = None
        self.notify_listeners()

    def login(self, username: str, password: str) -> User:
        self.is_loading = True
        self.notify_listeners()
        try:
            user = self.api.login(username, password)
            if not user.is_admin:
                self.api.logout()
                raise ApiError('Only admin users are allowed to access this system')
            self.user = user
            return user
        finally:
            self.is_loading = False
            self.notify_listeners()

    def logout(self) -> None:
        self.api.logout()
        self.user = None
        self.notify_listeners()

    def check_auth_status(self) -> None:
        """Restore the session from a stored token, if it is still valid."""
        if not self.api.get_token():
            return
        try:
            me = self.api.get_me()
        except ApiError as e:
            logger.info('Stored session is no longer valid: %s', e)
            self.logout()
            return
        if not me.is_admin:
            self.logout()
            return
        self.user = me
        self.notify_listeners()


class BookProvider(ChangeNotifier):
    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.books: List[Book] = []
        self.is_loading = False
        self.error: Optional[str] = None

    def load_books(self, search: Optional[str] = None, category: Optional[str] = None) -> None:
        self.is_loading = True
        self.error = None
        self.notify_listeners()
        try:
            self.books = self.api.get_books(search=search, category=category)
            logger.debug('Loaded %d books', len(self.books))
        except ApiError as e:
            self.error = str(e)
            raise
        finally:
            self.is_loading = False
            self.notify_listeners()

    def add_book(self, book: Book) -> Book:
        created = self.api.add_book(book)
        self.books.append(created)
        self.notify_listeners()
        return created

    def update_book(self, book_id: int, book: Book) -> None:
        self.api.update_book(book_id, book)
        for index, existing in enumerate(self.books):
            if existing.id == book_id:
                self.books[index] = dataclasses.replace(book, id=book_id)
                self.notify_listeners()
                break

    def delete_book(self, book_id: int) -> None:
        self.api.delete_book(book_id)
        self.books = [book for book in self.books if book.id != book_id]
        self.notify_listeners()


class MemberProvider(ChangeNotifier):
    """Members loaded a page at a time."""

    def __init__(self, api: ApiService, page_size: int = MEMBER_PAGE_SIZE) -> None:
        super().__init__()
        self.api = api
        self.page_size = page_size
        self.members: List[Member] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.current_page = 1
        self.total_pages = 1
        self.total_members = 0
        self.has_more = False
        self._search: Optional[str] = None
        self._type: Optional[str] = None

    def load_members(self, search: Optional[str] = None, type: Optional[str] = None) -> None:
        self._search = search
        self._type = type
        self.current_page = 1
        self.members = []
        self._fetch_page(1, replace=True)

    def load_more(self) -> None:
        if self.is_loading or not self.has_more:
            return
        self._fetch_page(self.current_page + 1, replace=False)

    def load_page(self, page: int) -> None:
        if self.is_loading:
            return
        self._fetch_page(page, replace=True)

    def _fetch_page(self, page: int, replace: bool) -> None:
        self.is_loading = True
        self.error = None
        self.notify_listeners()
        try:
            result = self.api.get_members_page(page=page, limit=self.page_size,
                                               search=self._search, type=self._type)
            self.members = result.items if replace else self.members + result.items
            self.current_page = result.pagination.page
            self.total_pages = result.pagination.total_pages
            self.total_members = result.pagination.total
            self.has_more = result.pagination.has_more
            logger.debug('Loaded %d members, page %d/%d', len(result.items),
                         self.current_page, self.total_pages)
        except ApiError as e:
            self.error = str(e)
            raise
        finally:
            self.is_loading = False
            self.notify_listeners()

    def add_member(self, member: Member) -> Member:
        created = self.api.add_member(member)
        self.members.insert(0, created)
        self.total_members += 1
        self.notify_listeners()
        return created

    def update_member(self, member_id: int, member: Member) -> None:
        self.api.update_member(member_id, member)
        for index, existing in enumerate(self.members):
            if existing.id == member_id:
                self.members[index] = dataclasses.replace(member, id=member_id)
                self.notify_listeners()
                break

    def delete_member(self, member_id: int) -> None:
        self.api.delete_member(member_id)
        self.members = [member for member in self.members if member.id != member_id]
        self.total_members = max(self.total_members - 1, 0)
        self.notify_listeners()


class IssueProvider(ChangeNotifier):
    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.issues: List[Issue] = []
        self.stats: Dict[str, int] = {}
        self.is_loading = False
        self.error: Optional[str] = None

    def load_issues(self) -> None:
        self.is_loading = True
        self.error = None
        self.notify_listeners()
        try:
            self.issues = self.api.get_issues()
            logger.debug('Loaded %d issues', len(self.issues))
        except ApiError as e:
            self.error = str(e)
            raise
        finally:
            self.is_loading = False
            self.notify_listeners()

    def load_stats(self) -> None:
        self.stats = self.api.get_dashboard_stats()
        self.notify_listeners()

    def _reload(self) -> None:
        self.load_issues()
        self.load_stats()

    def issue_book(self, book_id: int, member_id: int, due_date: Optional[str] = None) -> int:
        issue_id = self.api.issue_book(book_id, member_id, due_date)
        self._reload()
        return issue_id

    def return_book(self, issue_id: int) -> None:
        self.api.return_book(issue_id)
        self._reload()

    def update_issue(self, issue_id: int, due_date: Optional[str] = None,
                     return_date: Optional[str] = None, status: Optional[str] = None) -> None:
        self.api.update_issue(issue_id, due_date=due_date, return_date=return_date, status=status)
        self._reload()


class NotificationProvider(ChangeNotifier):
    """Notification list and unread badge.

    After ``initialize`` the unread count is polled every ten seconds and
    the full list is reloaded whenever this client changes data.
    """

    def __init__(self, api: ApiService, poll_seconds: int = NOTIFICATION_POLL_SECONDS) -> None:
        super().__init__()
        self.api = api
        self.poll_seconds = poll_seconds
        self.notifications: List[AppNotification] = []
        self.unread_count = 0
        self.is_loading = False
        self.user_id: Optional[int] = None
        self._scheduler: Optional[BackgroundScheduler] = None
        self._subscribed = False

    @property
    def unread_notifications(self) -> List[AppNotification]:
        return [n for n in self.notifications if not n.is_read]

    def initialize(self, user_id: int, start_polling: bool = True) -> None:
        if self.user_id == user_id and (self._scheduler is not None or self._subscribed):
            return
        self.user_id = user_id
        if not self._subscribed:
            self.api.data_changed.connect(self._on_data_changed, sender=self.api)
            self._subscribed = True
        self.load_notifications()
        if start_polling:
            self._start_polling()

    def _on_data_changed(self, sender, **kwargs) -> None:
        self.refresh(silent=True, full=True)

    def _start_polling(self) -> None:
        self.stop_polling()
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            func=self.refresh,
            kwargs={'silent': True},
            trigger='interval',
            seconds=self.poll_seconds,
            id='notification_poll',
            replace_existing=True
        )
        self._scheduler.start()

    def stop_polling(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def dispose(self) -> None:
        self.stop_polling()
        if self._subscribed:
            self.api.data_changed.disconnect(self._on_data_changed, sender=self.api)
            self._subscribed = False

    def _recount(self) -> None:
        self.unread_count = len(self.unread_notifications)

    def load_notifications(self, unread_only: bool = False, silent: bool = False) -> None:
        if not silent:
            self.is_loading = True
            self.notify_listeners()
        self.notifications = self.api.get_notifications(unread_only=unread_only)
        self._recount()
        if not silent:
            self.is_loading = False
        self.notify_listeners()

    def load_unread_count(self) -> None:
        self.unread_count = self.api.get_unread_notification_count()
        self.notify_listeners()

    def mark_as_read(self, notification_id: int) -> None:
        try:
            self.api.mark_notification_as_read(notification_id)
        except ApiError as e:
            logger.warning('Could not mark notification %s read: %s', notification_id, e)
            return
        self.notifications = [
            dataclasses.replace(n, is_read=True) if n.id == notification_id else n
            for n in self.notifications
        ]
        self._recount()
        self.notify_listeners()

    def mark_all_as_read(self) -> None:
        try:
            self.api.mark_all_notifications_as_read()
        except ApiError as e:
            logger.warning('Could not mark notifications read: %s', e)
            return
        self.notifications = [dataclasses.replace(n, is_read=True) for n in self.notifications]
        self.unread_count = 0
        self.notify_listeners()

    def delete_notification(self, notification_id: int) -> None:
        self.api.delete_notification(notification_id)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        self._recount()
        self.notify_listeners()

    def refresh(self, silent: bool = False, full: bool = False) -> None:
        """A silent partial refresh only re-reads the unread count."""
        if silent and not full:
            self.load_unread_count()
            return
        self.load_notifications(silent=silent)


class ReportProvider(ChangeNotifier):
    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.popular_books: List[PopularBook] = []
        self.active_members: List[ActiveMember] = []
        self.monthly_stats: List[MonthlyStats] = []
        self.category_stats: List[CategoryStats] = []
        self.overdue: List[Dict] = []
        self.is_loading = False

    def _load(self, attribute: str, fetch: Callable[[], list]) -> None:
        self.is_loading = True
        self.notify_listeners()
        try:
            setattr(self, attribute, fetch())
            logger.debug('Loaded %d %s rows', len(getattr(self, attribute)), attribute)
        except ApiError as e:
            logger.warning('Could not load %s: %s', attribute, e)
        finally:
            self.is_loading = False
            self.notify_listeners()

    def load_popular_books(self, limit: int = 10, period: Optional[str] = None) -> None:
        self._load('popular_books', lambda: self.api.get_popular_books(limit=limit, period=period))

    def load_active_members(self, limit: int = 10, period: Optional[str] = None) -> None:
        self._load('active_members', lambda: self.api.get_active_members(limit=limit, period=period))

    def load_monthly_stats(self, year: Optional[int] = None) -> None:
        self._load('monthly_stats', lambda: self.api.get_monthly_stats(year=year))

    def load_category_stats(self) -> None:
        self._load('category_stats', self.api.get_category_stats)

    def load_overdue(self) -> None:
        self._load('overdue', self.api.get_overdue_report)

    def load_all_reports(self) -> None:
        self.load_popular_books()
        self.load_active_members()
        self.load_monthly_stats()
        self.load_category_stats()
        self.load_overdue()

    def report_items(self, name: str) -> List[Dict]:
        if name == 'overdue':
            return list(self.overdue)
        if name not in ('popular_books', 'active_members', 'monthly_stats', 'category_stats'):
            raise ValueError(f'Unsupported report type: {name}')
        return [item.to_json() for item in getattr(self, name)]

    def export_report(self, name: str, fmt: str, path: Optional[str] = None) -> str:
        """Write the loaded report as CSV or PDF and return the file path.

        Without ``path`` the file is written to the current directory as
        ``report_<name>_<YYYY-MM-DD>.<fmt>``.
        """
        data = export_report(name, self.report_items(name), fmt)
        target = path or os.path.join(os.getcwd(), report_filename(name, fmt))
        with open(target, 'wb') as f:
            f.write(data)
        logger.info('Exported %s report to %s', name, target)
        return target


class SearchProvider(ChangeNotifier):
    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.books: List[Book] = []
        self.members: List[Member] = []
        self.issues: List[Issue] = []
        self.recommendations: List[Book] = []
        self.is_loading = False
        self.last_query = ''
        self.reset_filters(notify=False)

    def set_search_type(self, value: str) -> None:
        self.search_type = value
        self.notify_listeners()

    def set_category_filter(self, value: str) -> None:
        self.category_filter = value
        self.notify_listeners()

    def set_availability_filter(self, value: str) -> None:
        self.availability_filter = value
        self.notify_listeners()

    def set_sort_by(self, value: str) -> None:
        self.sort_by = value
        self.notify_listeners()

    def reset_filters(self, notify: bool = True) -> None:
        self.search_type = 'all'
        self.category_filter = 'all'
        self.availability_filter = 'all'
        self.sort_by = 'title'
        if notify:
            self.notify_listeners()

    def clear_search(self) -> None:
        self.books = []
        self.members = []
        self.issues = []
        self.last_query = ''
        self.notify_listeners()

    def search_all(self, query: str) -> None:
        """Search books, members and issues; errors clear results and propagate."""
        if not query.strip():
            self.clear_search()
            return
        self.is_loading = True
        self.last_query = query.strip()
        self.notify_listeners()
        try:
            results = self.api.advanced_search(query=query)
            self.books = results['books']
            self.members = results['members']
            self.issues = results['issues']
        except ApiError:
            self.books, self.members, self.issues = [], [], []
            self.last_query = ''
            raise
        finally:
            self.is_loading = False
            self.notify_listeners()

    def advanced_search(self, query: str) -> None:
        """Book search honouring the category and availability filters."""
        if not query.strip():
            self.books = []
            self.last_query = ''
            self.notify_listeners()
            return
        self.is_loading = True
        self.last_query = query.strip()
        self.notify_listeners()
        try:
            results = self.api.advanced_search(
                query=query,
                category=None if self.category_filter == 'all' else self.category_filter,
                status=None if self.availability_filter == 'all' else self.availability_filter,
            )
            self.books = results['books']
            logger.debug('Found %d books for %r', len(self.books), query)
        except ApiError as e:
            logger.warning('Advanced search failed: %s', e)
            self.books = []
        self.is_loading = False
        self.notify_listeners()

    def load_recommendations(self, member_id: int) -> None:
        self.is_loading = True
        self.notify_listeners()
        self.recommendations = self.api.get_recommendations(member_id)
        self.is_loading = False
        self.notify_listeners()

    def clear_recommendations(self) -> None:
        self.recommendations = []
        self.notify_listeners()


class DashboardProvider(ChangeNotifier):
    def __init__(self, api: ApiService) -> None:
        super().__init__()
        self.api = api
        self.widgets: List[DashboardWidget] = []
        self.is_loading = False

    @property
    def visible_widgets(self) -> List[DashboardWidget]:
        return sorted((w for w in self.widgets if w.is_visible), key=lambda w: w.position)

    def load_settings(self, user_id: int) -> None:
        self.is_loading = True
        self.notify_listeners()
        self.widgets = self.api.get_dashboard_settings(user_id) or default_dashboard_widgets()
        self.is_loading = False
        self.notify_listeners()

    def save_settings(self, user_id: int) -> None:
        self.api.save_dashboard_settings(user_id, self.widgets)

    def toggle_widget_visibility(self, name: str) -> None:
        for index, widget in enumerate(self.widgets):
            if widget.name == name:
                self.widgets[index] = dataclasses.replace(widget, is_visible=not widget.is_visible)
                self.notify_listeners()
                return

    def reorder_widgets(self, old_index: int, new_index: int) -> None:
        """Move a visible widget; indexes refer to ``visible_widgets``."""
        if old_index < new_index:
            new_index -= 1
        visible = self.visible_widgets
        visible.insert(new_index, visible.pop(old_index))
        positions = {widget.name: position for position, widget in enumerate(visible)}
        self.widgets = [
            dataclasses.replace(w, position=positions[w.name]) if w.name in positions else w
            for w in self.widgets
        ]
        self.notify_listeners()

    def reset_to_defaults(self) -> None:
        self.widgets = default_dashboard_widgets()
        self.notify_listeners()

    def is_widget_visible(self, name: str) -> bool:
        for widget in self.widgets:
            if widget.name == name:
                return widget.is_visible
        return True


class ThemeProvider(ChangeNotifier):
    """Dark-mode flag kept in the preferences file."""

    PREFERENCE_KEY = 'isDarkMode'

    def __init__(self, preferences: Optional[JsonPreferences] = None) -> None:
        super().__init__()
        self.preferences = preferences or JsonPreferences()
        self.is_dark_mode = bool(self.preferences.get(self.PREFERENCE_KEY, False))

    def toggle_theme(self) -> None:
        self.set_theme(not self.is_dark_mode)

    def set_theme(self, is_dark: bool) -> None:
        self.is_dark_mode = is_dark
        self.preferences.set(self.PREFERENCE_KEY, is_dark)
        self.notify_listeners()
