"""Flask CLI commands: ``flask --app libdesk.app init-db`` and friends."""
import logging

import click
from flask import Flask
from flask.cli import with_appcontext

from libdesk.models.book import Book
from libdesk.models.database import get_db, init_db
from libdesk.models.issue import Issue
from libdesk.models.member import Member
from libdesk.models.user import User

logger = logging.getLogger(__name__)

DEMO_BOOKS = [
    {'title': 'Clean Code', 'author': 'Robert C. Martin', 'isbn': '9780132350884',
     'category': 'Computer Science', 'total_copies': 3},
    {'title': 'Introduction to Algorithms', 'author': 'Cormen et al', 'isbn': '9780262033848',
     'category': 'Computer Science', 'total_copies': 2},
    {'title': 'Godan', 'author': 'Premchand', 'category': 'Literature', 'total_copies': 2},
    {'title': 'A Brief History of Time', 'author': 'Stephen Hawking', 'isbn': '9780553380163',
     'category': 'Science'},
]

DEMO_MEMBERS = [
    {'name': 'Asha Verma', 'email': 'asha@example.com', 'phone': '9876543210',
     'member_type': 'faculty'},
    {'name': 'Rohit Singh', 'email': 'rohit@example.com', 'member_type': 'staff'},
    {'name': 'Meera Nair', 'phone': '9123456780', 'member_type': 'guest'},
]


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the schema and seed the admin account and categories."""
    init_db()
    click.echo('Database initialized.')


@click.command('seed-demo')
@with_appcontext
def seed_demo_command():
    """Add sample books, members and one loan to an empty catalogue."""
    init_db()
    if get_db().execute('SELECT COUNT(*) FROM books').fetchone()[0]:
        click.echo('Books already present; nothing seeded.')
        return

    book_ids = [Book.create(book)[0] for book in DEMO_BOOKS]
    member_ids = [Member.create(member)[0] for member in DEMO_MEMBERS]
    issue_id, message = Issue.create({'book_id': book_ids[0], 'member_id': member_ids[0]})
    if issue_id is None:
        logger.warning('Demo loan not created: %s', message)
    click.echo(f'Seeded {len(book_ids)} books, {len(member_ids)} members.')


@click.command('reset-password')
@with_appcontext
@click.argument('username')
@click.argument('password')
def reset_password_command(username, password):
    """Set a new password for USERNAME."""
    ok, message = User.set_password(username, password)
    if not ok:
        raise click.ClickException(message)
    click.echo(message)


def register_commands(app: Flask) -> None:
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)
    app.cli.add_command(reset_password_command)
