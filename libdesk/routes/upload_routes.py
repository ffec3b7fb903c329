"""Standalone image uploads.

The client uploads an image first and stores the returned URL with the
book or member. When the form carries the owner's id, the row is updated
immediately and the replaced upload is removed.
"""
from typing import Optional

from flask import Blueprint, jsonify, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.book import Book
from libdesk.models.member import Member
from libdesk.utils.decorators import token_required
from libdesk.utils.uploads import delete_upload, save_image_upload

upload_bp = Blueprint('uploads', __name__)


def _form_id(*names: str) -> Optional[int]:
    for name in names:
        raw = request.form.get(name)
        if raw is not None and raw.strip():
            try:
                return int(raw.strip())
            except ValueError:
                return None
    return None


@upload_bp.route('/uploads/book-cover', methods=['POST'])
@token_required
def upload_book_cover():
    url, error = save_image_upload(request.files.get('cover'))
    if url is None:
        return jsonify({'error': error}), 400

    book_id = _form_id('book_id', 'bookId')
    if not book_id:
        return jsonify({'url': url, 'storedInDb': False})

    book = Book.get_by_id(book_id)
    if not book:
        delete_upload(url)
        return jsonify({'error': 'Book not found'}), 404
    previous = book.set_cover(url)
    if previous != url:
        delete_upload(previous)
    broadcast_data_changed('books', 'update')
    return jsonify({'url': url, 'storedInDb': True, 'book_id': book_id})


@upload_bp.route('/uploads/member-photo', methods=['POST'])
@token_required
def upload_member_photo():
    url, error = save_image_upload(request.files.get('photo'))
    if url is None:
        return jsonify({'error': error}), 400

    member_id = _form_id('member_id', 'memberId')
    if not member_id:
        return jsonify({'url': url, 'storedInDb': False})

    member = Member.get_by_id(member_id)
    if not member:
        delete_upload(url)
        return jsonify({'error': 'Member not found'}), 404
    previous = member.set_photo(url)
    if previous != url:
        delete_upload(previous)
    broadcast_data_changed('members', 'update')
    return jsonify({'url': url, 'storedInDb': True, 'member_id': member_id})
