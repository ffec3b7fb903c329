"""Loan (issue) routes."""
from flask import Blueprint, jsonify, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.issue import Issue
from libdesk.utils.decorators import token_required
from libdesk.utils.request_helpers import get_json_body, get_page_args, paginated, parse_id_list

issue_bp = Blueprint('issues', __name__)


@issue_bp.route('/issues', methods=['GET'])
@token_required
def list_issues():
    """Paginated loans filtered by ``member_id``, ``book_id`` and ``status``."""
    Issue.refresh_and_notify()
    page, limit, offset = get_page_args()
    filters = {key: request.args.get(key) for key in ('member_id', 'book_id', 'status')}
    rows, total = Issue.search_page(filters, limit, offset)
    return jsonify(paginated(rows, page, limit, total))


@issue_bp.route('/issues', methods=['POST'])
@token_required
def create_issue():
    issue_id, message = Issue.create(get_json_body())
    if issue_id is None:
        status = 404 if message.endswith('not found') else 400
        return jsonify({'error': message}), status
    broadcast_data_changed('issues', 'create')
    return jsonify({'id': issue_id})


@issue_bp.route('/issues/bulk-delete', methods=['POST'])
@token_required
def bulk_delete_issues():
    ids = get_json_body().get('ids')
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'No issue IDs provided'}), 400
    valid_ids = parse_id_list(ids)
    if not valid_ids:
        return jsonify({'error': 'No valid issue IDs provided'}), 400

    deleted, restored = Issue.bulk_delete(valid_ids)
    broadcast_data_changed('issues', 'delete')
    return jsonify({
        'message': f'Deleted {deleted} issue(s)',
        'deleted': deleted,
        'requested': len(valid_ids),
        'booksRestored': restored,
    })


@issue_bp.route('/issues/<int:issue_id>/return', methods=['PUT'])
@token_required
def return_issue(issue_id: int):
    issue = Issue.get_by_id(issue_id)
    if not issue:
        return jsonify({'error': 'Issue not found'}), 404

    ok, message = issue.return_book()
    if not ok:
        return jsonify({'error': message}), 400
    broadcast_data_changed('issues', 'return')
    return jsonify({'message': message})


@issue_bp.route('/issues/<int:issue_id>/remind', methods=['POST'])
@token_required
def remind_issue(issue_id: int):
    issue = Issue.get_by_id(issue_id)
    if not issue:
        return jsonify({'error': 'Issue not found'}), 404
    issue.send_reminder()
    broadcast_data_changed('notifications', 'create')
    return jsonify({'message': 'Reminder logged'})


@issue_bp.route('/issues/<int:issue_id>', methods=['PUT'])
@token_required
def update_issue(issue_id: int):
    """Change ``due_date``, ``return_date`` or ``status`` of a loan."""
    issue = Issue.get_by_id(issue_id)
    if not issue:
        return jsonify({'error': 'Issue not found'}), 404

    ok, message = issue.update(get_json_body())
    if not ok:
        return jsonify({'error': message}), 400
    broadcast_data_changed('issues', 'update')
    return jsonify({'message': message})
