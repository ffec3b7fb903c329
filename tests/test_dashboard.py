"""Dashboard stats, alerts, activity and widget settings."""
from datetime import date, timedelta


def _user_id(client, auth_headers):
    return client.get('/api/auth/me', headers=auth_headers).get_json()['user']['id']


def test_stats(client, auth_headers, create_book, create_member, create_issue):
    book_id = create_book(total_copies=3)
    create_book()
    member_id = create_member()
    create_member(name='Bela Roy')
    create_issue(book_id, member_id)

    stats = client.get('/api/dashboard/stats', headers=auth_headers).get_json()

    assert stats == {
        'total_books': 2,
        'total_copies': 4,
        'issued_books': 1,
        'available_books': 3,
        'overdue_books': 0,
        'active_members': 2,
        'total_members': 2,
    }


def test_alerts(client, auth_headers, create_book, create_member, create_issue):
    borrower = create_member()
    create_member(name='Bela Roy')
    long_ago = (date.today() - timedelta(days=10)).isoformat()
    create_issue(create_book(total_copies=1), borrower, due_date=long_ago)

    alerts = client.get('/api/dashboard/alerts', headers=auth_headers).get_json()

    assert set(alerts) == {'overdue', 'dueToday', 'dueTomorrow', 'lowStock',
                           'inactiveMembers', 'deactivatedMembers', 'kpis'}
    assert alerts['overdue']['count'] == 1
    assert alerts['overdue']['items'][0]['days_overdue'] == 10
    assert alerts['lowStock']['count'] == 1
    assert [m['name'] for m in alerts['inactiveMembers']['items']] == ['Bela Roy']
    assert alerts['deactivatedMembers'] == {'count': 0, 'items': []}
    assert alerts['kpis']['utilization_rate'] == 1.0


def test_alert_thresholds_come_from_the_query(client, auth_headers, create_book,
                                              create_member, create_issue):
    three_days_ago = (date.today() - timedelta(days=3)).isoformat()
    create_issue(create_book(), create_member(), due_date=three_days_ago)

    default = client.get('/api/dashboard/alerts', headers=auth_headers).get_json()
    relaxed = client.get('/api/dashboard/alerts?overdue_days=1',
                         headers=auth_headers).get_json()

    assert default['overdue']['count'] == 0
    assert relaxed['overdue']['count'] == 1


def test_activity_feed_and_clear(client, auth_headers, create_book, create_member,
                                 create_issue):
    book_id = create_book(title='Gaban')
    create_issue(book_id, create_member())

    feed = client.get('/api/dashboard/activity', headers=auth_headers).get_json()
    assert {item['type'] for item in feed} == {'issue', 'book_added', 'member_added'}
    assert 'Issued: Gaban' in [item['title'] for item in feed]

    resp = client.post('/api/dashboard/activity/clear', headers=auth_headers)
    body = resp.get_json()
    assert body['message'] == 'Activity cleared'
    assert body['hidden_before']


def test_settings_default_and_saved_layout(client, auth_headers):
    user_id = _user_id(client, auth_headers)

    defaults = client.get(f'/api/dashboard/settings/{user_id}', headers=auth_headers).get_json()
    assert [w['widget_name'] for w in defaults][:2] == ['stats_cards', 'charts']
    assert all(w['is_visible'] for w in defaults)

    widgets = [
        {'widget_name': 'charts', 'is_visible': False},
        {'widget_name': 'stats_cards', 'is_visible': True, 'settings': {'compact': True}},
    ]
    resp = client.put(f'/api/dashboard/settings/{user_id}', json={'widgets': widgets},
                      headers=auth_headers)
    assert resp.get_json() == {'message': 'Settings saved'}

    saved = client.get(f'/api/dashboard/settings/{user_id}', headers=auth_headers).get_json()
    assert [(w['widget_name'], w['is_visible'], w['position']) for w in saved] == [
        ('charts', False, 0), ('stats_cards', True, 1),
    ]
    assert saved[1]['settings'] == {'compact': True}


def test_settings_are_private(client, auth_headers):
    user_id = _user_id(client, auth_headers)

    resp = client.get(f'/api/dashboard/settings/{user_id + 1}', headers=auth_headers)
    assert resp.status_code == 403
    assert resp.get_json() == {'error': 'Forbidden'}

    resp = client.get('/api/dashboard/settings/me', headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid user id'}
