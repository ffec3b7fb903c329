"""Book and member category routes."""
from flask import Blueprint, jsonify

from libdesk.extensions import broadcast_data_changed
from libdesk.models.category import BookCategory, MemberCategory
from libdesk.utils.decorators import token_required
from libdesk.utils.request_helpers import get_json_body

category_bp = Blueprint('categories', __name__)


@category_bp.route('/categories', methods=['GET'])
@token_required
def list_categories():
    return jsonify(BookCategory.get_all())


@category_bp.route('/categories', methods=['POST'])
@token_required
def create_category():
    body = get_json_body()
    category_id, message = BookCategory.create(body.get('name'), body.get('description'))
    if category_id is None:
        return jsonify({'error': message}), 400
    broadcast_data_changed('categories', 'create')
    return jsonify({'id': category_id, 'message': message})


@category_bp.route('/member-categories', methods=['GET'])
@token_required
def list_member_categories():
    return jsonify(MemberCategory.get_all())
