import json

import pytest

from libdesk.app import create_app
from libdesk.client.api_service import ApiService
from libdesk.client.storage import MemoryTokenStore
from libdesk.config.config import TestingConfig

ADMIN_USERNAME = 'admin'
ADMIN_PASSWORD = 'Library#123'


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        DATABASE_PATH = str(tmp_path / 'library.db')
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
        DEFAULT_ADMIN_USERNAME = ADMIN_USERNAME
        DEFAULT_ADMIN_PASSWORD = ADMIN_PASSWORD

    return create_app(Config)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    resp = client.post('/api/auth/login',
                       json={'username': ADMIN_USERNAME, 'password': ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def create_book(client, auth_headers):
    def _create(**fields):
        body = {'title': 'Godan', 'author': 'Premchand', **fields}
        resp = client.post('/api/books', json=body, headers=auth_headers)
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()['id']
    return _create


@pytest.fixture
def create_member(client, auth_headers):
    def _create(**fields):
        body = {'name': 'Asha Verma', **fields}
        resp = client.post('/api/members', json=body, headers=auth_headers)
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()['id']
    return _create


@pytest.fixture
def create_issue(client, auth_headers):
    def _create(book_id, member_id, **fields):
        body = {'book_id': book_id, 'member_id': member_id, **fields}
        resp = client.post('/api/issues', json=body, headers=auth_headers)
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()['id']
    return _create


class FakeResponse:
    """Stands in for ``requests.Response``."""

    def __init__(self, status_code=200, body=None, content=None):
        self.status_code = status_code
        self._body = body
        if content is not None:
            self.content = content
            self.text = content.decode('utf-8', errors='replace')
        elif isinstance(body, str):
            self.text = body
            self.content = body.encode('utf-8')
        else:
            self.text = json.dumps(body)
            self.content = self.text.encode('utf-8')

    def json(self):
        if isinstance(self._body, (dict, list)):
            return self._body
        raise ValueError('not JSON')


class FakeSession:
    """Routes ``(method, path)`` to queued responses and records every call.

    The last queued response for a route is repeated; an exception in the
    queue is raised instead of returned.
    """

    def __init__(self, base_url):
        self.base_url = base_url
        self.routes = {}
        self.calls = []
        self.origin_response = FakeResponse(200, 'Library Management System API')

    def add(self, method, path, *responses):
        self.routes.setdefault((method, path), []).extend(responses)

    def calls_to(self, method, path):
        return [call for call in self.calls
                if call['method'] == method and call['path'] == path]

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        path = url[len(self.base_url):]
        self.calls.append({'method': method, 'path': path, 'headers': headers,
                           'timeout': timeout, **kwargs})
        queue = self.routes.get((method, path))
        if not queue:
            return FakeResponse(404, {'error': 'Not found'})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, headers=None, timeout=None):
        if isinstance(self.origin_response, Exception):
            raise self.origin_response
        return self.origin_response


@pytest.fixture
def fake_session():
    return FakeSession('http://library.test/api')


@pytest.fixture
def api(fake_session):
    return ApiService(base_url='http://library.test/api/', server_origin='http://library.test',
                      token_store=MemoryTokenStore(), session=fake_session)
