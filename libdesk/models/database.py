"""Database initialization and connection management.

This module provides database connection management, schema initialization
and default data loading for the library management system.
"""
import logging
import os
import sqlite3
from datetime import datetime

from flask import current_app, g
from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)

SCHEMA = (
    '''
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'admin',
        created_at TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS book_categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        description TEXT,
        created_at TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS books (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        isbn TEXT,
        title TEXT NOT NULL,
        author TEXT NOT NULL,
        rack_number TEXT,
        category TEXT,
        publisher TEXT,
        year_published INTEGER,
        cover_image TEXT,
        total_copies INTEGER DEFAULT 1,
        available_copies INTEGER DEFAULT 1,
        description TEXT,
        status TEXT DEFAULT 'available',
        added_date TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS member_categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        max_books INTEGER DEFAULT 3,
        loan_period_days INTEGER DEFAULT 14,
        created_at TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        member_type TEXT NOT NULL DEFAULT 'guest',
        profile_photo TEXT,
        address TEXT,
        membership_date TEXT NOT NULL,
        expiry_date TEXT,
        is_active INTEGER DEFAULT 1,
        created_at TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS issues (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        book_id INTEGER NOT NULL,
        member_id INTEGER NOT NULL,
        issue_date TEXT NOT NULL,
        due_date TEXT NOT NULL,
        return_date TEXT,
        status TEXT NOT NULL DEFAULT 'issued',
        notes TEXT,
        issued_at TEXT,
        returned_at TEXT,
        FOREIGN KEY (book_id) REFERENCES books (id) ON DELETE CASCADE,
        FOREIGN KEY (member_id) REFERENCES members (id) ON DELETE CASCADE
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'info',
        is_read INTEGER DEFAULT 0,
        related_id INTEGER,
        related_type TEXT,
        created_at TEXT DEFAULT (datetime('now', 'localtime'))
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS dashboard_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        widget_name TEXT NOT NULL,
        is_visible INTEGER DEFAULT 1,
        position INTEGER DEFAULT 0,
        settings TEXT
    )
    ''',
    'CREATE INDEX IF NOT EXISTS idx_books_title ON books (title)',
    'CREATE INDEX IF NOT EXISTS idx_books_author ON books (author)',
    'CREATE INDEX IF NOT EXISTS idx_books_isbn ON books (isbn)',
    'CREATE INDEX IF NOT EXISTS idx_books_category ON books (category)',
    'CREATE INDEX IF NOT EXISTS idx_members_name ON members (name)',
    'CREATE INDEX IF NOT EXISTS idx_issues_status ON issues (status)',
    'CREATE INDEX IF NOT EXISTS idx_issues_due_date ON issues (due_date)',
    'CREATE INDEX IF NOT EXISTS idx_issues_member ON issues (member_id)',
    'CREATE INDEX IF NOT EXISTS idx_issues_book ON issues (book_id)',
    'CREATE INDEX IF NOT EXISTS idx_notifications_read ON notifications (is_read)',
)


def now_timestamp() -> str:
    """Local time as ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def get_db() -> sqlite3.Connection:
    """Get database connection from Flask application context.

    Returns:
        SQLite database connection with Row factory and foreign keys enabled.
    """
    if 'db' not in g:
        path = current_app.config['DATABASE_PATH']
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        g.db = sqlite3.connect(path, detect_types=sqlite3.PARSE_DECLTYPES)
        g.db.row_factory = sqlite3.Row
        g.db.execute('PRAGMA foreign_keys = ON')
    return g.db


def close_db(e=None):
    """Close database connection"""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db():
    """Initialize database with schema and default rows."""
    db = get_db()
    for statement in SCHEMA:
        db.execute(statement)
    db.commit()

    insert_default_data(db)
    logger.info('Database ready at %s', current_app.config['DATABASE_PATH'])


def insert_default_data(db: sqlite3.Connection):
    """Seed the admin account and category tables when they are empty."""
    config = current_app.config

    if db.execute('SELECT COUNT(*) FROM users').fetchone()[0] == 0:
        db.execute(
            'INSERT INTO users (username, password_hash, role) VALUES (?, ?, ?)',
            (config['DEFAULT_ADMIN_USERNAME'],
             generate_password_hash(config['DEFAULT_ADMIN_PASSWORD']),
             'admin')
        )
        logger.info("Created default admin user '%s'", config['DEFAULT_ADMIN_USERNAME'])

    if db.execute('SELECT COUNT(*) FROM member_categories').fetchone()[0] == 0:
        db.executemany(
            'INSERT INTO member_categories (name, max_books, loan_period_days) VALUES (?, ?, ?)',
            [(name, limits[0], limits[1])
             for name, limits in config['DEFAULT_MEMBER_CATEGORIES'].items()]
        )

    if db.execute('SELECT COUNT(*) FROM book_categories').fetchone()[0] == 0:
        db.executemany(
            'INSERT INTO book_categories (name, description) VALUES (?, ?)',
            config['DEFAULT_BOOK_CATEGORIES']
        )

    db.commit()


def rows_to_dicts(rows) -> list:
    return [dict(row) for row in rows]
