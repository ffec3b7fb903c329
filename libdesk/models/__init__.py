"""
Models package

Entities:
    User - staff accounts that sign in to the API (user.py)
    Book, BookCategory, MemberCategory - catalogue (book.py, category.py)
    Member - library members (member.py)
    Issue - book loans (issue.py)
    Notification - staff notification bell (notification.py)

Read-only aggregates:
    Dashboard, Report, Search, Backup
"""
from libdesk.models.backup import Backup
from libdesk.models.book import Book
from libdesk.models.category import BookCategory, MemberCategory, normalize_member_type
from libdesk.models.dashboard import Dashboard
from libdesk.models.database import close_db, get_db, init_db
from libdesk.models.issue import Issue
from libdesk.models.member import Member
from libdesk.models.notification import Notification
from libdesk.models.report import Report
from libdesk.models.search import Search
from libdesk.models.user import User

__all__ = [
    'User', 'Book', 'BookCategory', 'MemberCategory', 'normalize_member_type',
    'Member', 'Issue', 'Notification',
    'Dashboard', 'Report', 'Search', 'Backup',
    'init_db', 'get_db', 'close_db',
]
