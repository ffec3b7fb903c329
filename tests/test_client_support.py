"""Client models, local storage, backup files and the backend launcher."""
import json
import subprocess
from datetime import date

import pytest

from conftest import FakeResponse
from libdesk.client import backend_service
from libdesk.client.backend_service import BackendService, ensure_env_file
from libdesk.client.backup import default_backup_filename, restore_backup_file, save_backup
from libdesk.client.models import (AppNotification, Book, DashboardWidget, Issue, Member,
                                   MonthlyStats, as_int)
from libdesk.client.storage import JsonPreferences, TokenStore


def test_book_from_json_normalizes_legacy_text():
    book = Book.from_json({'id': '3', 'title': 'fo|ky; iqLrd', 'author': 'Premchand',
                           'year_published': '1936', 'status': 'issued'})

    assert book.id == 3
    assert book.title == 'विद्यालय पुस्तक'
    assert book.year_published == 1936
    assert book.available_copies == 0
    assert book.total_copies == 1


def test_member_defaults_and_limits():
    member = Member.from_json({'id': 1, 'name': 'Asha', 'is_active': 0})

    assert member.is_active is False
    assert member.member_type_label == 'Guest'
    assert member.max_books == 3
    assert Member(name='Dr. Rao', member_type='faculty').loan_period_days == 30


def test_issue_overdue_days():
    issue = Issue.from_json({'id': 1, 'book_id': 2, 'member_id': 3, 'issue_date': '2024-03-01',
                             'due_date': '2024-03-10', 'title': 'Godan'})

    assert issue.book_title == 'Godan'
    assert issue.days_overdue(date(2024, 3, 15)) == 5
    assert issue.is_overdue(date(2024, 3, 10)) is False
    assert Issue.from_json({**issue.to_json(), 'status': 'returned'}).days_overdue(
        date(2024, 3, 15)) == 0


def test_small_models():
    assert as_int('12') == 12
    assert as_int('abc', 7) == 7
    assert as_int(True) == 0
    assert MonthlyStats(month=2).month_name == 'Feb'
    assert DashboardWidget(name='recent_issues').display_name == 'Recent Issues'
    assert DashboardWidget(name='my_custom_widget').display_name == 'My Custom Widget'
    notification = AppNotification.from_json({'id': 1, 'title': 't', 'message': 'm',
                                              'type': 'mystery', 'is_read': 1})
    assert notification.is_read is True
    assert notification.icon == 'ℹ️'


def test_preferences_and_token_store(tmp_path):
    path = tmp_path / 'nested' / 'prefs.json'
    store = TokenStore(JsonPreferences(str(path)))

    assert store.read() is None
    store.write('abc')
    assert json.loads(path.read_text(encoding='utf-8')) == {'token': 'abc'}
    store.delete()
    assert store.read() is None

    path.write_text('{broken', encoding='utf-8')
    assert JsonPreferences(str(path)).get('token', 'fallback') == 'fallback'


def test_save_and_restore_backup_file(api, fake_session, tmp_path):
    document = {'timestamp': 't', 'version': '2.0', 'data': {'books': [{'id': 1}]}}
    fake_session.add('GET', '/backup', FakeResponse(200, document))
    fake_session.add('POST', '/restore', FakeResponse(200, {'message': 'ok'}))
    path = tmp_path / default_backup_filename(date(2024, 3, 5))

    save_backup(api, str(path))
    restore_backup_file(api, str(path))

    assert path.name == 'library_backup_2024-03-05.json'
    assert fake_session.calls_to('POST', '/restore')[0]['json'] == {
        'data': {'books': [{'id': 1}]}, 'clear_existing': True,
    }


def test_restore_rejects_invalid_files(api, tmp_path):
    broken = tmp_path / 'broken.json'
    broken.write_text('not json', encoding='utf-8')
    listing = tmp_path / 'list.json'
    listing.write_text('[]', encoding='utf-8')

    with pytest.raises(ValueError):
        restore_backup_file(api, str(broken))
    with pytest.raises(ValueError):
        restore_backup_file(api, str(listing))


def test_ensure_env_file_writes_defaults_once(tmp_path):
    path = ensure_env_file(str(tmp_path), port=4000)
    first = (tmp_path / '.env').read_text(encoding='utf-8')

    ensure_env_file(str(tmp_path), port=5000)

    assert path == str(tmp_path / '.env')
    assert 'PORT=4000' in first
    assert 'JWT_SECRET=' in first
    assert (tmp_path / '.env').read_text(encoding='utf-8') == first


def test_start_backend_skips_a_running_server(monkeypatch):
    monkeypatch.setattr(backend_service, 'is_backend_running', lambda port, host: True)
    monkeypatch.setattr(subprocess, 'Popen', pytest.fail)

    service = BackendService()

    assert service.start_backend() is True
    assert service.is_running is True


class _FakeProcess:
    pid = 4321

    def __init__(self):
        self.terminated = False
        self.killed = False

    def terminate(self):
        self.terminated = True

    def wait(self, timeout=None):
        if timeout is not None and not self.killed:
            raise subprocess.TimeoutExpired('libdesk', timeout)

    def kill(self):
        self.killed = True


def test_start_and_stop_backend(monkeypatch, tmp_path):
    answers = iter([False, True])
    monkeypatch.setattr(backend_service, 'is_backend_running',
                        lambda port, host: next(answers))
    launched = {}
    process = _FakeProcess()

    def fake_popen(args, cwd, env):
        launched.update(args=args, cwd=cwd, port=env['PORT'])
        return process

    monkeypatch.setattr(backend_service.subprocess, 'Popen', fake_popen)
    service = BackendService(port=3100, startup_wait=0)

    assert service.start_backend(str(tmp_path)) is True
    assert launched['args'][1:] == ['-m', 'libdesk']
    assert launched['cwd'] == str(tmp_path)
    assert launched['port'] == '3100'
    assert (tmp_path / '.env').exists()

    service.stop_backend(timeout=0.1)
    assert process.terminated and process.killed
    assert service.process is None
    assert service.is_running is False


def test_start_backend_with_missing_directory(monkeypatch, tmp_path):
    monkeypatch.setattr(backend_service, 'is_backend_running', lambda port, host: False)

    service = BackendService(startup_wait=0)

    assert service.start_backend(str(tmp_path / 'missing')) is False
    assert service.is_starting is False
