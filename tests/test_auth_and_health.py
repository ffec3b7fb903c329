"""Login, token checks and health endpoints."""
from libdesk.models.user import User


def test_login_returns_token_and_admin_user(client):
    resp = client.post('/api/auth/login', json={'username': 'admin', 'password': 'Library#123'})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body['token']
    assert body['user']['username'] == 'admin'
    assert body['user']['role'] == 'admin'


def test_login_with_wrong_password_is_rejected(client):
    resp = client.post('/api/auth/login', json={'username': 'admin', 'password': 'nope'})

    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'Invalid credentials'}


def test_login_requires_username_and_password(client):
    resp = client.post('/api/auth/login', json={'username': 'admin'})

    assert resp.status_code == 400


def test_non_admin_account_cannot_sign_in(app, client):
    with app.app_context():
        User.create('clerk', 'Secret123!', role='staff')

    resp = client.post('/api/auth/login', json={'username': 'clerk', 'password': 'Secret123!'})

    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'Only admin users are allowed to access this system'


def test_me_returns_the_signed_in_user(client, auth_headers):
    resp = client.get('/api/auth/me', headers=auth_headers)

    assert resp.status_code == 200
    assert resp.get_json()['user']['username'] == 'admin'


def test_protected_route_without_token_is_401(client):
    resp = client.get('/api/books')

    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'Access denied'}


def test_protected_route_with_bad_token_is_403(client):
    resp = client.get('/api/books', headers={'Authorization': 'Bearer not-a-token'})

    assert resp.status_code == 403
    assert resp.get_json() == {'error': 'Invalid token'}


def test_health(client):
    resp = client.get('/api/health')

    body = resp.get_json()
    assert resp.status_code == 200
    assert body['status'] == 'healthy'
    assert body['version'] == '2.0'
    assert body['timestamp'].endswith('Z')


def test_detailed_health_probes_database(client):
    resp = client.get('/api/health/detailed')

    body = resp.get_json()
    assert resp.status_code == 200
    assert body['database'] == {'status': 'connected', 'type': 'sqlite'}
    assert body['uptime'] >= 0


def test_root_banner_and_unknown_route(client):
    assert client.get('/').data.startswith(b'Library Management System API')

    resp = client.get('/api/does-not-exist')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}
