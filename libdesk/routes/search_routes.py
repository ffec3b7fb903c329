"""Cross-entity search and reading recommendations."""
from flask import Blueprint, jsonify, request

from libdesk.models.search import Search
from libdesk.utils.decorators import token_required

search_bp = Blueprint('search', __name__)

SEARCH_FILTERS = ('q', 'category', 'author', 'year_from', 'year_to', 'status', 'member_type')


@search_bp.route('/search', methods=['GET'])
@token_required
def search():
    filters = {key: request.args.get(key) for key in SEARCH_FILTERS}
    return jsonify(Search.search_all(filters))


@search_bp.route('/recommendations/<int:member_id>', methods=['GET'])
@token_required
def recommendations(member_id: int):
    return jsonify(Search.recommendations(member_id))
