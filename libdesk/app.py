"""Library Management System - Flask Application.

JSON API for the desktop client. Models hold the SQL, blueprints stay thin.
Run with ``python -m libdesk`` or ``flask --app libdesk.app run``.
"""
import atexit
import logging
import os

from flask import Flask, g, jsonify, send_from_directory
from flask_cors import CORS

from libdesk import API_VERSION
from libdesk.commands import register_commands
from libdesk.config.config import Config
from libdesk.extensions import socketio
from libdesk.models.database import close_db, init_db
from libdesk.routes import (auth_bp, backup_bp, book_bp, category_bp, dashboard_bp, health_bp,
                            issue_bp, member_bp, notification_bp, report_bp, search_bp, upload_bp)
from libdesk.scheduled_tasks import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)

_logging_configured = False
_shutdown_registered = False

API_BLUEPRINTS = (health_bp, auth_bp, book_bp, category_bp, member_bp, issue_bp,
                  notification_bp, dashboard_bp, report_bp, search_bp, upload_bp, backup_bp)


def configure_logging(level: str = 'INFO') -> None:
    """Apply a timestamped log format once per process."""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    _logging_configured = True


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({'error': 'File too large'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db = g.get('db')
        if db is not None:
            db.rollback()
        original = getattr(error, 'original_exception', None) or error
        logger.error('Unhandled error: %s', original, exc_info=original)
        message = 'Internal server error'
        if not app.config.get('IS_PRODUCTION'):
            message += f': {original}'
        return jsonify({'error': message}), 500


def create_app(config_object=Config) -> Flask:
    """Build the application.

    Args:
        config_object: Config class loaded with ``app.config.from_object``.

    Returns:
        Configured Flask app with the database initialised and the
        background scheduler started (unless testing).
    """
    global _shutdown_registered

    config_object.validate()
    configure_logging(config_object.LOG_LEVEL)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if not app.config['JWT_SECRET']:
        app.config['JWT_SECRET'] = app.config['SECRET_KEY']
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    CORS(app, resources={r'/api/*': {'origins': app.config['CORS_ORIGINS'] or '*'}})
    socketio.init_app(app, cors_allowed_origins=app.config['CORS_ORIGINS'] or '*')

    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix='/api')

    @app.route('/')
    def index():
        return f'Library Management System API v{API_VERSION}', 200, {'Content-Type': 'text/plain'}

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    app.teardown_appcontext(close_db)
    register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        init_db()

    start_scheduler(app)
    if not app.config.get('TESTING') and not _shutdown_registered:
        atexit.register(shutdown_scheduler)
        _shutdown_registered = True

    logger.info('Library API v%s ready (%s)', API_VERSION, app.config['ENV_NAME'])
    return app
