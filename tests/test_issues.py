"""Loan endpoints."""
from datetime import date, timedelta


def _book(client, auth_headers, book_id):
    return client.get(f'/api/books/{book_id}', headers=auth_headers).get_json()


def test_issue_takes_a_copy_and_sets_due_date(client, auth_headers, create_book,
                                              create_member, create_issue):
    book_id = create_book(total_copies=2)
    member_id = create_member(member_type='faculty')

    create_issue(book_id, member_id)

    assert _book(client, auth_headers, book_id)['available_copies'] == 1
    issue = client.get(f'/api/issues?member_id={member_id}',
                       headers=auth_headers).get_json()['data'][0]
    assert issue['status'] == 'issued'
    assert issue['title'] == 'Godan'
    assert issue['member_name'] == 'Asha Verma'
    assert issue['due_date'] == (date.today() + timedelta(days=30)).isoformat()


def test_issue_rejects_missing_book_or_member(client, auth_headers, create_book, create_member):
    resp = client.post('/api/issues', json={'book_id': 999, 'member_id': create_member()},
                       headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Book not found'}

    resp = client.post('/api/issues', json={'book_id': create_book(), 'member_id': 999},
                       headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Member not found'}

    resp = client.post('/api/issues', json={'book_id': 1}, headers=auth_headers)
    assert resp.status_code == 400


def test_issue_rejects_inactive_member(client, auth_headers, create_book, create_member):
    member_id = create_member()
    client.put(f'/api/members/{member_id}/deactivate', headers=auth_headers)

    resp = client.post('/api/issues', json={'book_id': create_book(), 'member_id': member_id},
                       headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Member is inactive'}


def test_issue_enforces_borrowing_limit(client, auth_headers, create_book, create_member,
                                        create_issue):
    member_id = create_member()
    for _ in range(3):
        create_issue(create_book(), member_id)

    resp = client.post('/api/issues', json={'book_id': create_book(), 'member_id': member_id},
                       headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {
        'error': 'Member has reached maximum borrowing limit of 3 books',
    }


def test_issue_needs_a_copy_on_the_shelf(client, auth_headers, create_book, create_member,
                                         create_issue):
    book_id = create_book(total_copies=1)
    create_issue(book_id, create_member())

    resp = client.post('/api/issues', json={'book_id': book_id, 'member_id': create_member()},
                       headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'No copies available for this book'}


def test_return_book(client, auth_headers, create_book, create_member, create_issue):
    book_id = create_book(total_copies=1)
    issue_id = create_issue(book_id, create_member())

    resp = client.put(f'/api/issues/{issue_id}/return', headers=auth_headers)
    assert resp.get_json() == {'message': 'Book returned successfully'}
    assert _book(client, auth_headers, book_id)['available_copies'] == 1

    resp = client.put(f'/api/issues/{issue_id}/return', headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Book is already returned'}

    assert client.put('/api/issues/999/return', headers=auth_headers).status_code == 404


def test_update_issue_status_moves_copies(client, auth_headers, create_book, create_member,
                                          create_issue):
    book_id = create_book(total_copies=1)
    issue_id = create_issue(book_id, create_member())

    resp = client.put(f'/api/issues/{issue_id}', json={'status': 'lost'}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid status'}

    resp = client.put(f'/api/issues/{issue_id}', json={}, headers=auth_headers)
    assert resp.get_json() == {'error': 'No fields to update'}

    resp = client.put(f'/api/issues/{issue_id}', json={'status': 'returned'},
                      headers=auth_headers)
    assert resp.get_json() == {'message': 'Issue updated successfully'}
    assert _book(client, auth_headers, book_id)['available_copies'] == 1

    client.put(f'/api/issues/{issue_id}', json={'status': 'issued'}, headers=auth_headers)
    assert _book(client, auth_headers, book_id)['available_copies'] == 0


def test_past_due_loans_become_overdue(client, auth_headers, create_book, create_member,
                                       create_issue):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    create_issue(create_book(), create_member(), due_date=yesterday)

    rows = client.get('/api/issues?status=overdue', headers=auth_headers).get_json()['data']

    assert len(rows) == 1
    assert rows[0]['due_date'] == yesterday


def test_remind_logs_a_notification(client, auth_headers, create_book, create_member,
                                    create_issue):
    issue_id = create_issue(create_book(), create_member())

    resp = client.post(f'/api/issues/{issue_id}/remind', headers=auth_headers)

    assert resp.get_json() == {'message': 'Reminder logged'}
    titles = [n['title'] for n in
              client.get('/api/notifications', headers=auth_headers).get_json()]
    assert 'Reminder sent: Godan' in titles


def test_bulk_delete_restores_copies(client, auth_headers, create_book, create_member,
                                     create_issue):
    book_id = create_book(total_copies=2)
    member_id = create_member()
    active = create_issue(book_id, member_id)
    returned = create_issue(book_id, member_id)
    client.put(f'/api/issues/{returned}/return', headers=auth_headers)

    resp = client.post('/api/issues/bulk-delete', json={'ids': [active, returned]},
                       headers=auth_headers)

    assert resp.get_json() == {
        'message': 'Deleted 2 issue(s)', 'deleted': 2, 'requested': 2, 'booksRestored': 1,
    }
    assert _book(client, auth_headers, book_id)['available_copies'] == 2
