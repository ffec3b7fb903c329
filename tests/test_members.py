"""Member endpoints."""
from datetime import date


def test_create_member_defaults(client, auth_headers, create_member):
    member_id = create_member(email='asha@example.com', member_type='Student')

    member = client.get(f'/api/members/{member_id}', headers=auth_headers).get_json()

    assert member['name'] == 'Asha Verma'
    assert member['member_type'] == 'guest'
    assert member['is_active'] is True
    assert member['membership_date'] == date.today().isoformat()
    start = date.today()
    assert member['expiry_date'][:4] == str(start.year + 1)


def test_create_member_requires_name(client, auth_headers):
    resp = client.post('/api/members', json={'name': '  '}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Name is required'}


def test_create_member_accepts_numeric_name(client, auth_headers):
    resp = client.post('/api/members', json={'name': 12345, 'member_type': 7},
                       headers=auth_headers)

    assert resp.status_code == 200
    member = client.get(f"/api/members/{resp.get_json()['id']}", headers=auth_headers).get_json()
    assert member['name'] == '12345'

    resp = client.put(f"/api/members/{member['id']}", json={'name': 678}, headers=auth_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/members/{member['id']}",
                      headers=auth_headers).get_json()['name'] == '678'


def test_list_members_filters(client, auth_headers, create_member):
    create_member(name='Zoya Khan', member_type='faculty')
    create_member(name='Amit Shah', member_type='staff', phone='98100')
    inactive = create_member(name='Bela Roy')
    client.put(f'/api/members/{inactive}/deactivate', headers=auth_headers)

    body = client.get('/api/members?type=faculty', headers=auth_headers).get_json()
    assert [m['name'] for m in body['data']] == ['Zoya Khan']

    body = client.get('/api/members?search=981', headers=auth_headers).get_json()
    assert [m['name'] for m in body['data']] == ['Amit Shah']

    body = client.get('/api/members?active=true', headers=auth_headers).get_json()
    assert [m['name'] for m in body['data']] == ['Amit Shah', 'Zoya Khan']
    assert body['pagination']['total'] == 2


def test_partial_update_accepts_camel_case(client, auth_headers, create_member):
    member_id = create_member(email='old@example.com', address='Delhi')

    resp = client.put(f'/api/members/{member_id}',
                      json={'memberType': 'faculty', 'email': '', 'expiryDate': ''},
                      headers=auth_headers)

    assert resp.get_json() == {'message': 'Member updated'}
    member = client.get(f'/api/members/{member_id}', headers=auth_headers).get_json()
    assert member['member_type'] == 'faculty'
    assert member['email'] is None
    assert member['address'] == 'Delhi'
    assert member['expiry_date']


def test_update_rejects_bad_ids(client, auth_headers):
    resp = client.put('/api/members/abc', json={'name': 'X'}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid member id'}

    resp = client.put('/api/members/404', json={'name': 'X'}, headers=auth_headers)
    assert resp.status_code == 404


def test_deactivate_and_activate(client, auth_headers, create_member):
    member_id = create_member()

    resp = client.put(f'/api/members/{member_id}/deactivate', headers=auth_headers)
    assert resp.get_json() == {'message': 'Member deactivated'}
    member = client.get(f'/api/members/{member_id}', headers=auth_headers).get_json()
    assert member['is_active'] is False

    resp = client.put(f'/api/members/{member_id}/activate', headers=auth_headers)
    assert resp.get_json() == {'message': 'Member activated'}


def test_delete_and_bulk_delete(client, auth_headers, create_member):
    first, second = create_member(), create_member()

    resp = client.delete(f'/api/members/{first}', headers=auth_headers)
    assert resp.get_json() == {'message': 'Member deleted'}

    resp = client.post('/api/members/bulk-delete', json={'ids': [second, 'nope']},
                       headers=auth_headers)
    assert resp.get_json() == {
        'message': 'Deleted 1 member(s)', 'deleted': 1, 'requested': 1,
    }


def test_member_history(client, auth_headers, create_book, create_member, create_issue):
    member_id = create_member()
    create_issue(create_book(title='Godan'), member_id)
    create_issue(create_book(title='Gaban'), member_id)

    history = client.get(f'/api/members/{member_id}/history', headers=auth_headers).get_json()

    assert [row['title'] for row in history] == ['Gaban', 'Godan']
    assert client.get('/api/members/999/history', headers=auth_headers).status_code == 404
