"""Book catalogue routes.

This module handles listing, editing and deleting books, cover uploads and
bulk imports from spreadsheets.
"""
import logging

from flask import Blueprint, jsonify, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.book import Book
from libdesk.utils.decorators import token_required
from libdesk.utils.importer import ImportFileError, import_books, read_rows
from libdesk.utils.request_helpers import get_json_body, get_page_args, paginated, parse_id_list
from libdesk.utils.uploads import delete_upload, save_image_upload

logger = logging.getLogger(__name__)

book_bp = Blueprint('books', __name__)


@book_bp.route('/books', methods=['GET'])
@token_required
def list_books():
    """Paginated catalogue.

    Query params:
        search: Matches title, author or ISBN.
        category, author, year, status: Exact (author: partial) filters.
        available: ``true`` for books with a copy on the shelf.
        page, limit: Pagination.
    """
    page, limit, offset = get_page_args()
    filters = {key: request.args.get(key)
               for key in ('search', 'category', 'author', 'year', 'status', 'available')}
    rows, total = Book.search_page(filters, limit, offset)
    return jsonify(paginated(rows, page, limit, total))


@book_bp.route('/books/<int:book_id>', methods=['GET'])
@token_required
def get_book(book_id: int):
    book = Book.get_by_id(book_id)
    if not book:
        return jsonify({'error': 'Book not found'}), 404
    return jsonify(book.to_dict())


@book_bp.route('/books', methods=['POST'])
@token_required
def create_book():
    book_id, message = Book.create(get_json_body())
    if book_id is None:
        return jsonify({'error': message}), 400
    broadcast_data_changed('books', 'create')
    return jsonify({'id': book_id})


@book_bp.route('/books/<int:book_id>', methods=['PUT'])
@token_required
def update_book(book_id: int):
    body = get_json_body()
    if not body.get('title') or not body.get('author'):
        return jsonify({'error': 'Title and author are required'}), 400

    book = Book.get_by_id(book_id)
    if not book:
        return jsonify({'error': 'Book not found'}), 404

    ok, message = book.update(body)
    if not ok:
        return jsonify({'error': message}), 400
    broadcast_data_changed('books', 'update')
    return jsonify({'message': message})


@book_bp.route('/books/<int:book_id>', methods=['DELETE'])
@token_required
def delete_book(book_id: int):
    book = Book.get_by_id(book_id)
    if not book:
        return jsonify({'error': 'Book not found'}), 404
    book.delete()
    delete_upload(book.cover_image)
    broadcast_data_changed('books', 'delete')
    return jsonify({'message': 'Book deleted'})


@book_bp.route('/books/bulk-delete', methods=['POST'])
@token_required
def bulk_delete_books():
    ids = get_json_body().get('ids')
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'No book IDs provided'}), 400
    valid_ids = parse_id_list(ids)
    if not valid_ids:
        return jsonify({'error': 'No valid book IDs provided'}), 400

    deleted = Book.bulk_delete(valid_ids)
    broadcast_data_changed('books', 'delete')
    return jsonify({
        'message': f'Deleted {deleted} book(s)',
        'deleted': deleted,
        'requested': len(valid_ids),
    })


@book_bp.route('/books/<int:book_id>/cover', methods=['POST'])
@token_required
def upload_book_cover(book_id: int):
    book = Book.get_by_id(book_id)
    if not book:
        return jsonify({'error': 'Book not found'}), 404

    url, error = save_image_upload(request.files.get('cover'))
    if url is None:
        return jsonify({'error': error}), 400

    previous = book.set_cover(url)
    if previous != url:
        delete_upload(previous)
    broadcast_data_changed('books', 'update')
    return jsonify({'imageUrl': url, 'storedInDb': True})


@book_bp.route('/books/import', methods=['POST'])
@token_required
def import_books_file():
    """Import books from an uploaded ``.csv`` or ``.xlsx`` file (field ``file``)."""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'error': 'No file uploaded'}), 400

    try:
        rows = read_rows(upload.filename, upload.read())
    except ImportFileError as e:
        return jsonify({'error': str(e)}), 400

    summary = import_books(rows)
    if summary['inserted'] or summary['updated']:
        broadcast_data_changed('books', 'import')
    return jsonify(summary)
