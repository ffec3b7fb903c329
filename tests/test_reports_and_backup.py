"""Reports, search, backup/restore and exports."""
import json
from datetime import date, timedelta


def test_popular_books_and_active_members(client, auth_headers, create_book, create_member,
                                          create_issue):
    godan = create_book(title='Godan', total_copies=2)
    create_book(title='Gaban')
    asha = create_member()
    bela = create_member(name='Bela Roy')
    create_issue(godan, asha)
    create_issue(godan, bela)

    popular = client.get('/api/reports/popular-books?limit=1', headers=auth_headers).get_json()
    assert [(b['title'], b['borrow_count']) for b in popular] == [('Godan', 2)]

    members = client.get('/api/reports/active-members', headers=auth_headers).get_json()
    assert [(m['name'], m['borrow_count']) for m in members] == [
        ('Asha Verma', 1), ('Bela Roy', 1),
    ]


def test_monthly_and_yearly_stats(client, auth_headers, create_book, create_member,
                                  create_issue):
    issue_id = create_issue(create_book(), create_member())
    client.put(f'/api/issues/{issue_id}/return', headers=auth_headers)
    today = date.today()

    monthly = client.get(f'/api/reports/monthly-stats?year={today.year}',
                         headers=auth_headers).get_json()
    assert len(monthly) == 12
    assert monthly[today.month - 1] == {
        'month': today.month, 'issues': 1, 'returns': 1, 'overdue': 0,
    }

    yearly = client.get('/api/reports/yearly-stats', headers=auth_headers).get_json()
    assert yearly == [{
        'year': today.year, 'total_issues': 1, 'total_returns': 1,
        'unique_borrowers': 1, 'unique_books': 1,
    }]


def test_overdue_and_category_reports(client, auth_headers, create_book, create_member,
                                      create_issue):
    due = (date.today() - timedelta(days=4)).isoformat()
    create_issue(create_book(category='Literature'), create_member(), due_date=due)
    create_book(title='Clean Code', category='Computer Science')

    overdue = client.get('/api/reports/overdue', headers=auth_headers).get_json()
    assert [(row['title'], row['days_overdue']) for row in overdue] == [('Godan', 4)]

    categories = client.get('/api/reports/category-stats', headers=auth_headers).get_json()
    assert categories[0] == {'category': 'Literature', 'book_count': 1, 'borrow_count': 1}

    issued = client.get('/api/reports/issued', headers=auth_headers).get_json()
    assert [row['member_name'] for row in issued] == ['Asha Verma']


def test_search_across_entities(client, auth_headers, create_book, create_member,
                                create_issue):
    book_id = create_book(title='Godan', author='Premchand')
    create_book(title='Clean Code', author='Robert C. Martin')
    member_id = create_member(name='Premchand Fan')
    create_issue(book_id, member_id)

    result = client.get('/api/search?q=premchand', headers=auth_headers).get_json()

    assert [b['title'] for b in result['books']] == ['Godan']
    assert [m['name'] for m in result['members']] == ['Premchand Fan']
    assert [i['title'] for i in result['issues']] == ['Godan']

    result = client.get('/api/search?author=martin', headers=auth_headers).get_json()
    assert [b['title'] for b in result['books']] == ['Clean Code']


def test_recommendations(client, auth_headers, create_book, create_member, create_issue):
    read = create_book(title='Godan', author='Premchand')
    create_book(title='Gaban', author='Premchand')
    create_book(title='Clean Code', author='Robert C. Martin')
    member_id = create_member()

    fresh = client.get(f'/api/recommendations/{member_id}', headers=auth_headers).get_json()
    assert len(fresh) == 3
    assert 'popularity' in fresh[0]

    create_issue(read, member_id)
    picks = client.get(f'/api/recommendations/{member_id}', headers=auth_headers).get_json()
    assert [b['title'] for b in picks] == ['Gaban']


def test_backup_download(client, auth_headers, create_book):
    create_book()

    resp = client.get('/api/backup', headers=auth_headers)

    assert resp.headers['Content-Disposition'].startswith('attachment; filename=library_backup_')
    backup = json.loads(resp.data)
    assert backup['version'] == '2.0'
    assert set(backup['data']) == {'books', 'members', 'issues'}
    assert backup['data']['books'][0]['title'] == 'Godan'


def test_restore_requires_data(client, auth_headers):
    resp = client.post('/api/restore', json={'clear_existing': True}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'No backup data provided'}


def test_restore_round_trip(client, auth_headers, create_book, create_member, create_issue):
    create_issue(create_book(), create_member())
    backup = json.loads(client.get('/api/backup', headers=auth_headers).data)
    create_book(title='Added after backup')

    resp = client.post('/api/restore',
                       json={'data': backup['data'], 'clear_existing': True},
                       headers=auth_headers)

    body = resp.get_json()
    assert body['message'] == 'Backup restored successfully'
    assert body['restored'] == {'books': 1, 'members': 1, 'issues': 1}
    titles = [b['title'] for b in client.get('/api/books', headers=auth_headers).get_json()['data']]
    assert titles == ['Godan']


def test_restore_without_clearing_skips_existing_rows(client, auth_headers, create_book):
    create_book()
    backup = json.loads(client.get('/api/backup', headers=auth_headers).data)

    resp = client.post('/api/restore', json={'data': backup['data']}, headers=auth_headers)

    assert resp.get_json()['restored']['books'] == 0


def test_export_formats(client, auth_headers, create_book):
    create_book(title='Godan, a novel')

    csv_resp = client.get('/api/export/books?format=csv', headers=auth_headers)
    assert csv_resp.data.startswith(b'\xef\xbb\xbfid,isbn,title')
    assert '"Godan, a novel"' in csv_resp.data.decode('utf-8')

    pdf_resp = client.get('/api/export/books?format=pdf', headers=auth_headers)
    assert pdf_resp.headers['Content-Type'] == 'application/pdf'
    assert pdf_resp.data.startswith(b'%PDF')

    json_resp = client.get('/api/export/books', headers=auth_headers)
    assert json.loads(json_resp.data)[0]['title'] == 'Godan, a novel'


def test_export_errors(client, auth_headers):
    resp = client.get('/api/export/members?format=csv', headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'No data to export'}

    assert json.loads(client.get('/api/export/members', headers=auth_headers).data) == []

    resp = client.get('/api/export/users', headers=auth_headers)
    assert resp.get_json() == {'error': 'Invalid export type'}

    resp = client.get('/api/export/books?format=xml', headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid export format'}
