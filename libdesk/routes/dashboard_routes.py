"""Dashboard routes: stats, alerts, activity feed and widget layout."""
from flask import Blueprint, jsonify, request

from libdesk.models.dashboard import Dashboard
from libdesk.models.issue import Issue
from libdesk.utils.decorators import current_user_id, token_required
from libdesk.utils.request_helpers import get_json_body, parse_non_negative_int, parse_positive_int

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/dashboard/stats', methods=['GET'])
@token_required
def stats():
    Issue.refresh_overdue_statuses()
    return jsonify(Dashboard.get_stats())


@dashboard_bp.route('/dashboard/alerts', methods=['GET'])
@token_required
def alerts():
    """Alert groups.

    Query params:
        overdue_days: Minimum days overdue (default 7).
        low_stock_threshold: Maximum copies on the shelf (default 1).
        inactive_days: Days without a loan (default 60).
        limit: Items per group (default 10).
    """
    Issue.refresh_and_notify()
    return jsonify(Dashboard.get_alerts(
        overdue_days=parse_non_negative_int(request.args.get('overdue_days'), 7),
        low_stock_threshold=parse_non_negative_int(request.args.get('low_stock_threshold'), 1),
        inactive_days=parse_positive_int(request.args.get('inactive_days'), 60),
        limit=parse_positive_int(request.args.get('limit'), 10),
    ))


@dashboard_bp.route('/dashboard/activity', methods=['GET'])
@token_required
def activity():
    limit = parse_positive_int(request.args.get('limit'), 25)
    return jsonify(Dashboard.get_activity(current_user_id(), limit))


@dashboard_bp.route('/dashboard/activity/clear', methods=['POST'])
@token_required
def clear_activity():
    hidden_before = Dashboard.clear_activity(current_user_id())
    return jsonify({'message': 'Activity cleared', 'hidden_before': hidden_before})


def _settings_owner(user_id: str):
    """Resolve the path user id; returns (id, None) or (None, error response)."""
    if not user_id.isdigit():
        return None, (jsonify({'error': 'Invalid user id'}), 400)
    if int(user_id) != current_user_id():
        return None, (jsonify({'error': 'Forbidden'}), 403)
    return int(user_id), None


@dashboard_bp.route('/dashboard/settings/<user_id>', methods=['GET'])
@token_required
def get_settings(user_id: str):
    owner, error = _settings_owner(user_id)
    if error:
        return error
    return jsonify(Dashboard.get_settings(owner))


@dashboard_bp.route('/dashboard/settings/<user_id>', methods=['PUT'])
@token_required
def save_settings(user_id: str):
    owner, error = _settings_owner(user_id)
    if error:
        return error
    widgets = get_json_body().get('widgets')
    Dashboard.save_settings(owner, widgets if isinstance(widgets, list) else [])
    return jsonify({'message': 'Settings saved'})
