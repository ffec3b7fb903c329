"""Admin notification routes."""
from flask import Blueprint, jsonify, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.issue import Issue
from libdesk.models.notification import Notification
from libdesk.utils.decorators import token_required
from libdesk.utils.request_helpers import parse_positive_int

notification_bp = Blueprint('notifications', __name__)


@notification_bp.route('/notifications', methods=['GET'])
@token_required
def list_notifications():
    """Newest notifications; ``unread_only=true`` hides read ones."""
    Issue.refresh_and_notify()
    unread_only = request.args.get('unread_only') == 'true'
    limit = parse_positive_int(request.args.get('limit'), 50)
    notifications = Notification.get_recent(unread_only=unread_only, limit=limit)
    return jsonify([n.to_dict() for n in notifications])


@notification_bp.route('/notifications/count', methods=['GET'])
@token_required
def unread_count():
    """Unread badge count, after today's reminders are generated."""
    Issue.refresh_and_notify()
    return jsonify({'count': Notification.get_unread_count()})


@notification_bp.route('/notifications/read-all', methods=['PUT'])
@token_required
def mark_all_read():
    Notification.mark_all_as_read()
    broadcast_data_changed('notifications', 'update')
    return jsonify({'message': 'All notifications marked as read'})


@notification_bp.route('/notifications/<int:notification_id>/read', methods=['PUT'])
@token_required
def mark_read(notification_id: int):
    Notification.mark_as_read(notification_id)
    broadcast_data_changed('notifications', 'update')
    return jsonify({'message': 'Notification marked as read'})


@notification_bp.route('/notifications/<int:notification_id>', methods=['DELETE'])
@token_required
def delete_notification(notification_id: int):
    Notification.delete(notification_id)
    broadcast_data_changed('notifications', 'delete')
    return jsonify({'message': 'Notification deleted'})
