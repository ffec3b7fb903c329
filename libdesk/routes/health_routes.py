"""Health check routes (no authentication)."""
import logging
import sqlite3
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from libdesk import API_VERSION
from libdesk.models.database import get_db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)

STARTED_AT = time.monotonic()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


@health_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'healthy', 'timestamp': _timestamp(), 'version': API_VERSION})


@health_bp.route('/health/detailed', methods=['GET'])
def health_detailed():
    """Health including uptime and a database probe; 503 when the probe fails."""
    payload = {
        'status': 'healthy',
        'timestamp': _timestamp(),
        'version': API_VERSION,
        'uptime': round(time.monotonic() - STARTED_AT, 3),
        'database': {'status': 'connected', 'type': 'sqlite'},
    }
    try:
        get_db().execute('SELECT 1').fetchone()
    except sqlite3.Error as e:
        logger.error('Database health probe failed: %s', e)
        payload['status'] = 'degraded'
        payload['database']['status'] = 'disconnected'
        return jsonify(payload), 503
    return jsonify(payload)
