"""Member management routes."""
from flask import Blueprint, jsonify, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.member import Member
from libdesk.utils.decorators import token_required
from libdesk.utils.request_helpers import get_json_body, get_page_args, paginated, parse_id_list
from libdesk.utils.uploads import delete_upload, save_image_upload

member_bp = Blueprint('members', __name__)


@member_bp.route('/members', methods=['GET'])
@token_required
def list_members():
    """Paginated members filtered by ``search``, ``type`` and ``active``."""
    page, limit, offset = get_page_args()
    filters = {key: request.args.get(key) for key in ('search', 'type', 'active')}
    rows, total = Member.search_page(filters, limit, offset)
    return jsonify(paginated(rows, page, limit, total))


@member_bp.route('/members/<int:member_id>', methods=['GET'])
@token_required
def get_member(member_id: int):
    member = Member.get_by_id(member_id)
    if not member:
        return jsonify({'error': 'Member not found'}), 404
    return jsonify(member.to_dict())


@member_bp.route('/members', methods=['POST'])
@token_required
def create_member():
    member_id, message = Member.create(get_json_body())
    if member_id is None:
        return jsonify({'error': message}), 400
    broadcast_data_changed('members', 'create')
    return jsonify({'id': member_id})


@member_bp.route('/members/<member_id>', methods=['PUT'])
@token_required
def update_member(member_id: str):
    """Merge a partial update; keys may be snake_case or camelCase."""
    if not member_id.isdigit():
        return jsonify({'error': 'Invalid member id'}), 400
    member = Member.get_by_id(int(member_id))
    if not member:
        return jsonify({'error': 'Member not found'}), 404

    member.update(get_json_body())
    broadcast_data_changed('members', 'update')
    return jsonify({'message': 'Member updated'})


def _set_active(member_id: int, active: bool):
    member = Member.get_by_id(member_id)
    if not member:
        return jsonify({'error': 'Member not found'}), 404
    member.set_active(active)
    broadcast_data_changed('members', 'update')
    return jsonify({'message': 'Member activated' if active else 'Member deactivated'})


@member_bp.route('/members/<int:member_id>/deactivate', methods=['PUT'])
@token_required
def deactivate_member(member_id: int):
    return _set_active(member_id, False)


@member_bp.route('/members/<int:member_id>/activate', methods=['PUT'])
@token_required
def activate_member(member_id: int):
    return _set_active(member_id, True)


@member_bp.route('/members/<int:member_id>', methods=['DELETE'])
@token_required
def delete_member(member_id: int):
    member = Member.get_by_id(member_id)
    if not member:
        return jsonify({'error': 'Member not found'}), 404
    member.delete()
    delete_upload(member.profile_photo)
    broadcast_data_changed('members', 'delete')
    return jsonify({'message': 'Member deleted'})


@member_bp.route('/members/bulk-delete', methods=['POST'])
@token_required
def bulk_delete_members():
    ids = get_json_body().get('ids')
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'No member IDs provided'}), 400
    valid_ids = parse_id_list(ids)
    if not valid_ids:
        return jsonify({'error': 'No valid member IDs provided'}), 400

    deleted = Member.bulk_delete(valid_ids)
    broadcast_data_changed('members', 'delete')
    return jsonify({
        'message': f'Deleted {deleted} member(s)',
        'deleted': deleted,
        'requested': len(valid_ids),
    })


@member_bp.route('/members/<int:member_id>/photo', methods=['POST'])
@token_required
def upload_member_photo(member_id: int):
    member = Member.get_by_id(member_id)
    if not member:
        return jsonify({'error': 'Member not found'}), 404

    url, error = save_image_upload(request.files.get('photo'))
    if url is None:
        return jsonify({'error': error}), 400

    previous = member.set_photo(url)
    if previous != url:
        delete_upload(previous)
    broadcast_data_changed('members', 'update')
    return jsonify({'imageUrl': url, 'storedInDb': True})


@member_bp.route('/members/<int:member_id>/history', methods=['GET'])
@token_required
def member_history(member_id: int):
    member = Member.get_by_id(member_id)
    if not member:
        return jsonify({'error': 'Member not found'}), 404
    return jsonify(member.get_history())
