"""Flask CLI commands."""


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=['init-db'])

    assert result.exit_code == 0
    assert 'Database initialized.' in result.output


def test_seed_demo_runs_once(app, client, auth_headers):
    runner = app.test_cli_runner()

    first = runner.invoke(args=['seed-demo'])
    second = runner.invoke(args=['seed-demo'])

    assert 'Seeded 4 books, 3 members.' in first.output
    assert 'nothing seeded' in second.output
    issues = client.get('/api/issues', headers=auth_headers).get_json()['data']
    assert [issue['title'] for issue in issues] == ['Clean Code']


def test_reset_password(app, client):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['reset-password', 'admin', 'N3w-secret'])
    assert result.exit_code == 0
    assert 'Password updated' in result.output

    resp = client.post('/api/auth/login', json={'username': 'admin', 'password': 'N3w-secret'})
    assert resp.status_code == 200

    result = runner.invoke(args=['reset-password', 'ghost', 'whatever'])
    assert result.exit_code != 0
    assert "User 'ghost' not found" in result.output
