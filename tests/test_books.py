"""Catalogue endpoints, imports and cover uploads."""
import io
import os

from openpyxl import Workbook


def test_create_and_get_book(client, auth_headers, create_book):
    book_id = create_book(isbn=' 9788126415588 ', total_copies=3, year_published='1936')

    resp = client.get(f'/api/books/{book_id}', headers=auth_headers)

    book = resp.get_json()
    assert resp.status_code == 200
    assert book['title'] == 'Godan'
    assert book['isbn'] == '9788126415588'
    assert book['total_copies'] == 3
    assert book['available_copies'] == 3
    assert book['year_published'] == 1936
    assert book['status'] == 'available'


def test_create_book_requires_title_and_author(client, auth_headers):
    resp = client.post('/api/books', json={'title': 'Untitled'}, headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Title and author are required'}


def test_missing_book_is_404(client, auth_headers):
    resp = client.get('/api/books/999', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Book not found'}


def test_list_books_filters_and_paginates(client, auth_headers, create_book):
    create_book(title='Godan', author='Premchand', category='Literature')
    create_book(title='Gaban', author='Premchand', category='Literature')
    create_book(title='Clean Code', author='Robert C. Martin', category='Computer Science')

    resp = client.get('/api/books?author=premchand&limit=1&page=2', headers=auth_headers)

    body = resp.get_json()
    assert [book['title'] for book in body['data']] == ['Godan']
    assert body['pagination'] == {
        'page': 2, 'limit': 1, 'total': 2, 'totalPages': 2, 'hasMore': False,
    }

    resp = client.get('/api/books?search=clean', headers=auth_headers)
    assert [book['title'] for book in resp.get_json()['data']] == ['Clean Code']


def test_update_keeps_loaned_copies_out(client, auth_headers, create_book, create_member,
                                        create_issue):
    book_id = create_book(total_copies=2)
    create_issue(book_id, create_member())

    resp = client.put(f'/api/books/{book_id}',
                      json={'title': 'Godan', 'author': 'Premchand', 'total_copies': 4},
                      headers=auth_headers)

    assert resp.status_code == 200
    book = client.get(f'/api/books/{book_id}', headers=auth_headers).get_json()
    assert book['total_copies'] == 4
    assert book['available_copies'] == 3
    assert book['status'] == 'issued'


def test_delete_and_bulk_delete(client, auth_headers, create_book):
    first, second, third = create_book(), create_book(), create_book()

    assert client.delete(f'/api/books/{first}', headers=auth_headers).status_code == 200

    resp = client.post('/api/books/bulk-delete', json={'ids': [second, str(third), 'x', 999]},
                       headers=auth_headers)
    body = resp.get_json()
    assert body['deleted'] == 2
    assert body['requested'] == 3
    assert body['message'] == 'Deleted 2 book(s)'

    resp = client.post('/api/books/bulk-delete', json={'ids': []}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'No book IDs provided'}

    resp = client.post('/api/books/bulk-delete', json={'ids': ['a', None]}, headers=auth_headers)
    assert resp.get_json() == {'error': 'No valid book IDs provided'}

    resp = client.post('/api/books/bulk-delete', json={'ids': [2 ** 64, '1e30']},
                       headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'No valid book IDs provided'}

    resp = client.get('/api/books?page=99999999999999999999&limit=10', headers=auth_headers)
    assert resp.status_code == 200
    resp = client.get(f'/api/books?page={2 ** 63 - 1}&limit=10', headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data'] == []


def test_import_csv_inserts_and_updates(client, auth_headers, create_book):
    create_book(title='Godan', author='Premchand', isbn='111')
    csv_data = (
        'Book Name,Author Name,ISBN,Category,No of Copies,Year Published\n'
        'Godan,Premchand,111,Literature,5,1936\n'
        'Nirmala,Premchand,,Literature,2,1927 (first edition)\n'
        ',Missing Title,,,,\n'
    ).encode('utf-8')

    resp = client.post('/api/books/import', headers=auth_headers,
                       data={'file': (io.BytesIO(csv_data), 'books.csv', 'text/csv')},
                       content_type='multipart/form-data')

    summary = resp.get_json()
    assert resp.status_code == 200
    assert summary['inserted'] == 1
    assert summary['updated'] == 1
    assert summary['skipped'] == 1
    assert summary['totalRows'] == 3
    assert summary['errors'] == [{'row': 4, 'error': 'Missing required Title or Author'}]

    rows = client.get('/api/books?search=Nirmala', headers=auth_headers).get_json()['data']
    assert rows[0]['total_copies'] == 2
    assert rows[0]['year_published'] == 1927


def test_import_utf16_csv(client, auth_headers):
    csv_data = b'\xff\xfe' + 'Title,Author\n'.encode('utf-16-le')
    csv_data += 'गोदान,प्रेमचंद\n'.encode('utf-16-le')

    resp = client.post('/api/books/import', headers=auth_headers,
                       data={'file': (io.BytesIO(csv_data), 'books.csv', 'text/csv')},
                       content_type='multipart/form-data')

    assert resp.get_json()['inserted'] == 1
    rows = client.get('/api/books', headers=auth_headers).get_json()['data']
    assert rows[0]['title'] == 'गोदान'


def test_import_xlsx(client, auth_headers):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(['Title', 'Author', 'Copies'])
    sheet.append(['Clean Code', 'Robert C. Martin', 3])
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)

    resp = client.post('/api/books/import', headers=auth_headers,
                       data={'file': (buffer, 'books.xlsx')},
                       content_type='multipart/form-data')

    assert resp.get_json()['inserted'] == 1


def test_import_rejects_xls_and_missing_file(client, auth_headers):
    resp = client.post('/api/books/import', headers=auth_headers,
                       data={'file': (io.BytesIO(b'binary'), 'books.xls')},
                       content_type='multipart/form-data')
    assert resp.status_code == 400
    assert '.xls' in resp.get_json()['error']

    resp = client.post('/api/books/import', headers=auth_headers, data={},
                       content_type='multipart/form-data')
    assert resp.get_json() == {'error': 'No file uploaded'}


def test_cover_upload_replaces_previous_file(app, client, auth_headers, create_book):
    book_id = create_book()

    def upload():
        return client.post(f'/api/books/{book_id}/cover', headers=auth_headers,
                           data={'cover': (io.BytesIO(b'\x89PNG'), 'cover.png', 'image/png')},
                           content_type='multipart/form-data')

    first = upload().get_json()['imageUrl']
    second = upload().get_json()
    assert second['storedInDb'] is True
    assert second['imageUrl'].startswith('/uploads/')

    folder = app.config['UPLOAD_FOLDER']
    stored = os.listdir(folder)
    assert first.rsplit('/', 1)[1] not in stored
    assert second['imageUrl'].rsplit('/', 1)[1] in stored

    served = client.get(second['imageUrl'])
    assert served.status_code == 200
    assert served.data == b'\x89PNG'


def test_standalone_upload_rejects_non_images(client, auth_headers):
    resp = client.post('/api/uploads/book-cover', headers=auth_headers,
                       data={'cover': (io.BytesIO(b'text'), 'notes.txt', 'text/plain')},
                       content_type='multipart/form-data')

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Only image files are allowed'}


def test_standalone_upload_with_owner_updates_member(client, auth_headers, create_member):
    member_id = create_member()

    resp = client.post('/api/uploads/member-photo', headers=auth_headers,
                       data={'photo': (io.BytesIO(b'GIF89a'), 'me.gif', 'image/gif'),
                             'member_id': str(member_id)},
                       content_type='multipart/form-data')

    body = resp.get_json()
    assert body['storedInDb'] is True
    member = client.get(f'/api/members/{member_id}', headers=auth_headers).get_json()
    assert member['profile_photo'] == body['url']


def test_categories(client, auth_headers):
    names = [c['name'] for c in client.get('/api/categories', headers=auth_headers).get_json()]
    assert 'Fiction' in names
    assert len(names) == 42

    resp = client.post('/api/categories', json={'name': 'Hindi Sahitya'}, headers=auth_headers)
    assert resp.status_code == 200

    resp = client.post('/api/categories', json={'name': 'Hindi Sahitya'}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Category already exists'}

    member_categories = client.get('/api/member-categories', headers=auth_headers).get_json()
    assert [(c['name'], c['max_books'], c['loan_period_days']) for c in member_categories] == [
        ('guest', 3, 14), ('faculty', 10, 30), ('staff', 5, 21),
    ]
