"""Backup, restore and data export routes."""
import json
import time

from flask import Blueprint, jsonify, make_response, request

from libdesk.extensions import broadcast_data_changed
from libdesk.models.backup import Backup
from libdesk.utils.decorators import token_required
from libdesk.utils.exporters import rows_to_csv, rows_to_pdf
from libdesk.utils.request_helpers import get_json_body

backup_bp = Blueprint('backup', __name__)

EXPORT_FORMATS = ('json', 'csv', 'pdf')


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _attachment(body, filename: str, mimetype: str):
    output = make_response(body)
    output.headers['Content-Type'] = mimetype
    output.headers['Content-Disposition'] = f'attachment; filename={filename}'
    return output


@backup_bp.route('/backup', methods=['GET'])
@token_required
def download_backup():
    body = json.dumps(Backup.create(), ensure_ascii=False, indent=2)
    return _attachment(body, f'library_backup_{_epoch_ms()}.json', 'application/json')


@backup_bp.route('/restore', methods=['POST'])
@token_required
def restore_backup():
    """Restore ``{data, clear_existing}`` in one transaction."""
    body = get_json_body()
    data = body.get('data')
    if not isinstance(data, dict):
        return jsonify({'error': 'No backup data provided'}), 400

    restored = Backup.restore(data, clear_existing=bool(body.get('clear_existing')))
    for table in ('books', 'members', 'issues'):
        broadcast_data_changed(table, 'restore')
    return jsonify({'message': 'Backup restored successfully', 'restored': restored})


@backup_bp.route('/export/<export_type>', methods=['GET'])
@token_required
def export_data(export_type: str):
    """Export books, members or issues as ``json``, ``csv`` or ``pdf``."""
    result = Backup.export_rows(export_type)
    if result is None:
        return jsonify({'error': 'Invalid export type'}), 400
    fmt = (request.args.get('format') or 'json').lower()
    if fmt not in EXPORT_FORMATS:
        return jsonify({'error': 'Invalid export format'}), 400

    headers, rows = result
    filename = f'{export_type}_export_{_epoch_ms()}.{fmt}'
    if fmt == 'json':
        body = json.dumps(rows, ensure_ascii=False, indent=2)
        return _attachment(body, filename, 'application/json')

    if not rows:
        return jsonify({'error': 'No data to export'}), 404
    if fmt == 'csv':
        return _attachment(rows_to_csv(headers, rows).encode('utf-8'), filename,
                           'text/csv; charset=utf-8')
    title = f'{export_type.capitalize()} Export'
    return _attachment(rows_to_pdf(title, headers, rows), filename, 'application/pdf')
