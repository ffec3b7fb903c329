"""
Scheduled background tasks for the library system.

Tasks include:
- Promoting loans past their due date to overdue and creating the admin's
  overdue and due-soon notifications (every OVERDUE_REFRESH_MINUTES)
"""
import logging
import sqlite3
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask

from libdesk.models.issue import Issue
from libdesk.models.notification import Notification

logger = logging.getLogger(__name__)

scheduler: Optional[BackgroundScheduler] = None


def refresh_overdue_job(app: Flask) -> None:
    """Scheduled task: refresh overdue statuses and generate notifications.

    Runs inside the app context so the models get their own connection.
    Failures are logged and the scheduler keeps running.
    """
    with app.app_context():
        try:
            promoted = Issue.refresh_overdue_statuses()
            created = Notification.generate_due_notifications()
            logger.info('Overdue refresh: %d promoted, %d notification(s) created',
                        promoted, created)
        except sqlite3.Error as e:
            logger.error('Error in refresh_overdue_job: %s', e)


def start_scheduler(app: Flask) -> None:
    """Start the background scheduler unless testing or disabled."""
    global scheduler
    if app.config.get('TESTING') or not app.config.get('SCHEDULER_ENABLED', True):
        logger.info('Background scheduler disabled')
        return
    if scheduler is not None and scheduler.running:
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=refresh_overdue_job,
        args=[app],
        trigger='interval',
        minutes=app.config['OVERDUE_REFRESH_MINUTES'],
        id='refresh_overdue_job',
        name='Refresh overdue issues and notifications',
        replace_existing=True
    )
    scheduler.start()
    logger.info('Scheduled tasks started successfully')


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
        logger.info('Scheduled tasks shut down')
    scheduler = None
