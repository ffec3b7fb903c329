"""Client state providers."""
import pytest

from conftest import FakeResponse
from libdesk.client.errors import ApiError
from libdesk.client.models import DashboardWidget
from libdesk.client.providers import (AuthProvider, DashboardProvider, MemberProvider,
                                      NotificationProvider, ReportProvider, SearchProvider,
                                      ThemeProvider)
from libdesk.client.storage import JsonPreferences


def _counter(provider):
    calls = []
    provider.add_listener(lambda: calls.append(1))
    return calls


def test_auth_rejects_non_admin_accounts(api, fake_session):
    fake_session.add('POST', '/auth/login', FakeResponse(200, {
        'token': 'abc', 'user': {'id': 2, 'username': 'clerk', 'role': 'staff'},
    }))
    auth = AuthProvider(api)

    with pytest.raises(ApiError) as excinfo:
        auth.login('clerk', 'pw')

    assert excinfo.value.message == 'Only admin users are allowed to access this system'
    assert api.get_token() is None
    assert not auth.is_authenticated
    assert auth.is_loading is False


def test_auth_is_cleared_when_the_server_rejects_the_token(api, fake_session):
    fake_session.add('POST', '/auth/login', FakeResponse(200, {
        'token': 'abc', 'user': {'id': 1, 'username': 'admin', 'role': 'admin'},
    }))
    fake_session.add('GET', '/books/1', FakeResponse(401, {'error': 'Access denied'}))
    auth = AuthProvider(api)
    auth.login('admin', 'pw')
    assert auth.is_authenticated

    with pytest.raises(ApiError):
        api.get_book(1)

    assert auth.user is None


def test_check_auth_status_restores_session(api, fake_session):
    api.set_token('abc')
    fake_session.add('GET', '/auth/me', FakeResponse(200, {
        'user': {'id': 1, 'username': 'admin', 'role': 'admin'},
    }))
    auth = AuthProvider(api)

    auth.check_auth_status()

    assert auth.user.username == 'admin'


def test_member_pages(api, fake_session):
    def page(number, names, has_more):
        return FakeResponse(200, {
            'data': [{'id': index, 'name': name} for index, name in enumerate(names, 1)],
            'pagination': {'page': number, 'limit': 2, 'total': 3,
                           'totalPages': 2, 'hasMore': has_more},
        })

    fake_session.add('GET', '/members', page(1, ['Asha', 'Bela'], True),
                     page(2, ['Chetan'], False))
    provider = MemberProvider(api, page_size=2)

    provider.load_members()
    provider.load_more()
    provider.load_more()

    assert [m.name for m in provider.members] == ['Asha', 'Bela', 'Chetan']
    assert provider.total_members == 3
    assert provider.has_more is False
    assert len(fake_session.calls_to('GET', '/members')) == 2


def test_notifications_refresh_on_data_change(api, fake_session):
    fake_session.add('GET', '/notifications', FakeResponse(200, [
        {'id': 1, 'title': 'New Book Added: Godan', 'message': 'm', 'type': 'new_book',
         'is_read': False},
        {'id': 2, 'title': 'Due Soon: Gaban', 'message': 'm', 'type': 'due_soon',
         'is_read': True},
    ]))
    fake_session.add('PUT', '/notifications/1/read', FakeResponse(200, {'message': 'ok'}))
    fake_session.add('POST', '/books/bulk-delete', FakeResponse(200, {'deleted': 0}))
    provider = NotificationProvider(api)
    provider.initialize(user_id=1, start_polling=False)
    assert provider.unread_count == 1

    provider.mark_as_read(1)
    assert provider.unread_count == 0

    api.bulk_delete_books([99])
    assert len(fake_session.calls_to('GET', '/notifications')) == 2
    provider.dispose()


def test_silent_refresh_only_reads_the_count(api, fake_session):
    fake_session.add('GET', '/notifications/count', FakeResponse(200, {'count': 4}))
    provider = NotificationProvider(api)

    provider.refresh(silent=True)

    assert provider.unread_count == 4
    assert fake_session.calls_to('GET', '/notifications') == []


def test_failed_mark_all_keeps_state(api, fake_session):
    fake_session.add('PUT', '/notifications/read-all', FakeResponse(500, {'error': 'x'}))
    provider = NotificationProvider(api)
    provider.unread_count = 3

    provider.mark_all_as_read()

    assert provider.unread_count == 3


def test_report_export_writes_file(api, fake_session, tmp_path):
    fake_session.add('GET', '/reports/popular-books', FakeResponse(200, [
        {'id': 1, 'title': 'Godan', 'author': 'Premchand', 'borrow_count': 5},
    ]))
    fake_session.add('GET', '/reports/category-stats', FakeResponse(500, {'error': 'x'}))
    provider = ReportProvider(api)
    provider.load_popular_books()
    provider.load_category_stats()

    path = provider.export_report('popular_books', 'csv', str(tmp_path / 'popular.csv'))

    with open(path, encoding='utf-8-sig') as f:
        assert f.read().splitlines() == [
            'Rank,Title,Author,Category,Borrows',
            '1,Godan,Premchand,Uncategorized,5',
        ]
    assert provider.category_stats == []
    with pytest.raises(ValueError):
        provider.report_items('fines')


def test_search_provider(api, fake_session):
    fake_session.add('GET', '/search', FakeResponse(200, {
        'books': [{'id': 1, 'title': 'Godan', 'author': 'Premchand'}],
        'members': [], 'issues': [],
    }))
    provider = SearchProvider(api)
    provider.set_category_filter('Literature')

    provider.advanced_search('godan')

    assert [b.title for b in provider.books] == ['Godan']
    assert fake_session.calls[0]['params'] == {'q': 'godan', 'category': 'Literature'}

    provider.search_all('   ')
    assert provider.books == []
    assert provider.last_query == ''


def test_dashboard_reorder_and_toggle(api):
    provider = DashboardProvider(api)
    provider.widgets = [DashboardWidget(name=n, position=i) for i, n in enumerate('abcd')]

    provider.toggle_widget_visibility('b')
    provider.reorder_widgets(0, 3)

    assert [w.name for w in provider.visible_widgets] == ['c', 'd', 'a']
    assert provider.is_widget_visible('b') is False
    assert provider.is_widget_visible('unknown') is True

    provider.reset_to_defaults()
    assert provider.visible_widgets[0].name == 'stats_cards'


def test_theme_preference_persists(tmp_path):
    preferences = JsonPreferences(str(tmp_path / 'prefs.json'))
    theme = ThemeProvider(preferences)
    calls = _counter(theme)

    theme.toggle_theme()

    assert theme.is_dark_mode is True
    assert ThemeProvider(JsonPreferences(str(tmp_path / 'prefs.json'))).is_dark_mode is True
    assert calls == [1]
