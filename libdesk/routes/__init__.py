"""Routes package initialization.

This module exports all blueprints for registration in the main app.
Every blueprint is mounted under ``/api``.

Blueprint organization:
    - health_bp: Liveness and database probes (no auth)
    - auth_bp: Login and current user
    - book_bp: Catalogue, covers and spreadsheet import
    - category_bp: Book and member categories
    - member_bp: Members, photos and borrowing history
    - issue_bp: Loans, returns and reminders
    - notification_bp: Admin notifications
    - dashboard_bp: Stats, alerts, activity feed and widget layout
    - report_bp: Circulation reports
    - search_bp: Search and recommendations
    - upload_bp: Standalone image uploads
    - backup_bp: Backup, restore and export
"""
from libdesk.routes.auth_routes import auth_bp
from libdesk.routes.backup_routes import backup_bp
from libdesk.routes.book_routes import book_bp
from libdesk.routes.category_routes import category_bp
from libdesk.routes.dashboard_routes import dashboard_bp
from libdesk.routes.health_routes import health_bp
from libdesk.routes.issue_routes import issue_bp
from libdesk.routes.member_routes import member_bp
from libdesk.routes.notification_routes import notification_bp
from libdesk.routes.report_routes import report_bp
from libdesk.routes.search_routes import search_bp
from libdesk.routes.upload_routes import upload_bp

__all__ = [
    'health_bp',
    'auth_bp',
    'book_bp',
    'category_bp',
    'member_bp',
    'issue_bp',
    'notification_bp',
    'dashboard_bp',
    'report_bp',
    'search_bp',
    'upload_bp',
    'backup_bp',
]
