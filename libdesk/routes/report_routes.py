"""Report routes."""
from datetime import date

from flask import Blueprint, jsonify, request

from libdesk.models.issue import Issue
from libdesk.models.report import Report
from libdesk.utils.decorators import token_required
from libdesk.utils.request_helpers import parse_positive_int

report_bp = Blueprint('reports', __name__)


@report_bp.route('/reports/issued', methods=['GET'])
@token_required
def issued_report():
    return jsonify(Report.issued_books())


@report_bp.route('/reports/overdue', methods=['GET'])
@token_required
def overdue_report():
    Issue.refresh_overdue_statuses()
    return jsonify(Report.overdue_books())


@report_bp.route('/reports/popular-books', methods=['GET'])
@token_required
def popular_books():
    limit = parse_positive_int(request.args.get('limit'), 10)
    return jsonify(Report.popular_books(limit, request.args.get('period')))


@report_bp.route('/reports/active-members', methods=['GET'])
@token_required
def active_members():
    limit = parse_positive_int(request.args.get('limit'), 10)
    return jsonify(Report.active_members(limit, request.args.get('period')))


@report_bp.route('/reports/monthly-stats', methods=['GET'])
@token_required
def monthly_stats():
    year = parse_positive_int(request.args.get('year'), date.today().year)
    return jsonify(Report.monthly_stats(year))


@report_bp.route('/reports/category-stats', methods=['GET'])
@token_required
def category_stats():
    return jsonify(Report.category_stats())


@report_bp.route('/reports/yearly-stats', methods=['GET'])
@token_required
def yearly_stats():
    return jsonify(Report.yearly_stats())
