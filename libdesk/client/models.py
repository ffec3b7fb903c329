"""Client-side data objects built from API responses.

Text that may have been stored in the legacy KrutiDev encoding (titles,
authors, names, addresses, category names) is converted to Unicode
Devanagari as it is read.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from libdesk.utils.date_formatter import parse_date
from libdesk.utils.legacy_hindi import normalize_legacy_hindi_to_unicode

T = TypeVar('T')

MONTH_NAMES = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

WIDGET_DISPLAY_NAMES = {
    'stats_cards': 'Statistics Cards',
    'charts': 'Charts',
    'recent_issues': 'Recent Issues',
    'popular_books': 'Popular Books',
    'overdue_alerts': 'Overdue Alerts',
    'quick_actions': 'Quick Actions',
}

NOTIFICATION_ICONS = {
    'overdue': '⚠️',
    'due_soon': '⏰',
    'new_book': '📚',
    'warning': '⚠️',
    'error': '❌',
    'success': '✅',
    'system': '🔧',
}


def as_int(value: Any, fallback: int = 0) -> int:
    """Lenient integer coercion for JSON numbers and numeric strings."""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return round(value)
    try:
        return int(str(value).strip())
    except ValueError:
        return fallback


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return as_int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _text(value: Any) -> str:
    return normalize_legacy_hindi_to_unicode(str(value)) if value is not None else ''


def _optional_text(value: Any) -> Optional[str]:
    return normalize_legacy_hindi_to_unicode(str(value)) if value is not None else None


def _flag(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return value is True or value == 1


@dataclass
class User:
    id: int
    username: str
    role: str = 'admin'

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'User':
        return cls(id=as_int(data.get('id')), username=data.get('username') or '',
                   role=data.get('role') or '')

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username, 'role': self.role}


@dataclass
class Book:
    title: str
    author: str
    id: int = 0
    isbn: str = ''
    rack_number: Optional[str] = None
    category: Optional[str] = None
    publisher: Optional[str] = None
    year_published: Optional[int] = None
    status: str = 'available'
    added_date: str = ''
    cover_image: Optional[str] = None
    total_copies: int = 1
    available_copies: int = 1
    description: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'Book':
        status = data.get('status') or 'available'
        available = data.get('available_copies')
        return cls(
            id=as_int(data.get('id')),
            isbn=data.get('isbn') or '',
            title=_text(data.get('title')),
            author=_text(data.get('author')),
            rack_number=data.get('rack_number') or data.get('rackNumber'),
            category=data.get('category'),
            publisher=_optional_text(data.get('publisher')),
            year_published=_optional_int(data.get('year_published')),
            status=status,
            added_date=data.get('added_date') or '',
            cover_image=data.get('cover_image'),
            total_copies=as_int(data.get('total_copies'), 1),
            available_copies=(as_int(available) if available is not None
                              else (1 if status == 'available' else 0)),
            description=_optional_text(data.get('description')),
        )

    def to_json(self) -> Dict[str, Any]:
        """Request body for create and update."""
        return {
            'isbn': self.isbn,
            'title': self.title,
            'author': self.author,
            'rack_number': self.rack_number,
            'category': self.category,
            'publisher': self.publisher,
            'year_published': self.year_published,
            'cover_image': self.cover_image,
            'total_copies': self.total_copies,
            'description': self.description,
        }


@dataclass
class Member:
    name: str
    id: int = 0
    email: Optional[str] = None
    phone: Optional[str] = None
    member_type: str = 'guest'
    membership_date: str = ''
    profile_photo: Optional[str] = None
    address: Optional[str] = None
    expiry_date: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'Member':
        return cls(
            id=as_int(data.get('id')),
            name=_text(data.get('name')),
            email=data.get('email'),
            phone=data.get('phone'),
            member_type=data.get('member_type') or 'student',
            membership_date=data.get('membership_date') or '',
            profile_photo=data.get('profile_photo'),
            address=_optional_text(data.get('address')),
            expiry_date=data.get('expiry_date'),
            is_active=_flag(data.get('is_active'), default=True),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'member_type': self.member_type,
            'membership_date': self.membership_date,
            'profile_photo': self.profile_photo,
            'address': self.address,
            'expiry_date': self.expiry_date,
            'is_active': self.is_active,
        }

    @property
    def max_books(self) -> int:
        return {'faculty': 10, 'staff': 5}.get(self.member_type, 3)

    @property
    def loan_period_days(self) -> int:
        return {'faculty': 30, 'staff': 21}.get(self.member_type, 14)

    @property
    def member_type_label(self) -> str:
        lower = self.member_type.lower()
        if lower in ('student', 'guest'):
            return 'Guest'
        return {'faculty': 'Faculty', 'staff': 'Staff'}.get(lower, self.member_type)


@dataclass
class Issue:
    id: int
    book_id: int
    member_id: int
    issue_date: str
    due_date: str
    return_date: Optional[str] = None
    status: str = 'issued'
    book_title: str = ''
    book_author: str = ''
    member_name: str = ''
    cover_image: Optional[str] = None
    member_photo: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'Issue':
        return cls(
            id=as_int(data.get('id')),
            book_id=as_int(data.get('book_id')),
            member_id=as_int(data.get('member_id')),
            issue_date=data.get('issue_date') or '',
            due_date=data.get('due_date') or '',
            return_date=data.get('return_date'),
            status=data.get('status') or 'issued',
            book_title=_text(data.get('title')),
            book_author=_text(data.get('author')),
            member_name=_text(data.get('member_name')),
            cover_image=data.get('cover_image'),
            member_photo=data.get('member_photo'),
            notes=data.get('notes'),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'book_id': self.book_id,
            'member_id': self.member_id,
            'issue_date': self.issue_date,
            'due_date': self.due_date,
            'return_date': self.return_date,
            'status': self.status,
            'title': self.book_title,
            'author': self.book_author,
            'member_name': self.member_name,
            'cover_image': self.cover_image,
            'member_photo': self.member_photo,
            'notes': self.notes,
        }

    def _overdue_days(self, today: Optional[date] = None) -> int:
        if self.status == 'returned':
            return 0
        due = parse_date(self.due_date)
        if due is None:
            return 0
        return ((today or date.today()) - due.date()).days

    def is_overdue(self, today: Optional[date] = None) -> bool:
        return self._overdue_days(today) > 0

    def days_overdue(self, today: Optional[date] = None) -> int:
        return max(self._overdue_days(today), 0)


@dataclass
class AppNotification:
    id: int
    title: str
    message: str
    type: str = 'info'
    is_read: bool = False
    user_id: Optional[int] = None
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    created_at: str = ''

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'AppNotification':
        return cls(
            id=as_int(data.get('id')),
            user_id=_optional_int(data.get('user_id')),
            title=_text(data.get('title')),
            message=_text(data.get('message')),
            type=data.get('type') or 'info',
            is_read=_flag(data.get('is_read')),
            related_id=_optional_int(data.get('related_id')),
            related_type=data.get('related_type'),
            created_at=data.get('created_at') or '',
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'is_read': self.is_read,
            'related_id': self.related_id,
            'related_type': self.related_type,
            'created_at': self.created_at,
        }

    @property
    def icon(self) -> str:
        return NOTIFICATION_ICONS.get(self.type, 'ℹ️')


@dataclass
class DashboardWidget:
    name: str
    is_visible: bool = True
    position: int = 0
    settings: Optional[Dict[str, Any]] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'DashboardWidget':
        settings = data.get('settings')
        return cls(
            name=data.get('widget_name') or '',
            is_visible=_flag(data.get('is_visible')),
            position=as_int(data.get('position')),
            settings=settings if isinstance(settings, dict) else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'widget_name': self.name,
            'is_visible': self.is_visible,
            'position': self.position,
            'settings': self.settings,
        }

    @property
    def display_name(self) -> str:
        if self.name in WIDGET_DISPLAY_NAMES:
            return WIDGET_DISPLAY_NAMES[self.name]
        return ' '.join(word[:1].upper() + word[1:] for word in self.name.split('_') if word)


@dataclass
class MemberCategory:
    id: int
    name: str
    max_books: int = 3
    loan_period_days: int = 14

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'MemberCategory':
        return cls(
            id=as_int(data.get('id')),
            name=_text(data.get('name')),
            max_books=as_int(data.get('max_books'), 3),
            loan_period_days=as_int(data.get('loan_period_days'), 14),
        )

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'max_books': self.max_books,
                'loan_period_days': self.loan_period_days}


@dataclass
class BookCategory:
    id: int
    name: str
    description: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'BookCategory':
        return cls(id=as_int(data.get('id')), name=_text(data.get('name')),
                   description=_optional_text(data.get('description')))

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'description': self.description}


@dataclass
class PopularBook:
    id: int
    title: str
    author: str
    borrow_count: int = 0
    category: Optional[str] = None
    cover_image: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'PopularBook':
        return cls(
            id=as_int(data.get('id')),
            title=_text(data.get('title')),
            author=_text(data.get('author')),
            category=data.get('category'),
            cover_image=data.get('cover_image'),
            borrow_count=as_int(data.get('borrow_count')),
        )

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'title': self.title, 'author': self.author,
                'category': self.category, 'cover_image': self.cover_image,
                'borrow_count': self.borrow_count}


@dataclass
class ActiveMember:
    id: int
    name: str
    borrow_count: int = 0
    email: Optional[str] = None
    member_type: str = 'student'
    profile_photo: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'ActiveMember':
        return cls(
            id=as_int(data.get('id')),
            name=_text(data.get('name')),
            email=data.get('email'),
            member_type=data.get('member_type') or 'student',
            profile_photo=data.get('profile_photo'),
            borrow_count=as_int(data.get('borrow_count')),
        )

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'email': self.email,
                'member_type': self.member_type, 'profile_photo': self.profile_photo,
                'borrow_count': self.borrow_count}


@dataclass
class MonthlyStats:
    month: int
    issues: int = 0
    returns: int = 0
    overdue: int = 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'MonthlyStats':
        return cls(month=as_int(data.get('month'), 1), issues=as_int(data.get('issues')),
                   returns=as_int(data.get('returns')), overdue=as_int(data.get('overdue')))

    def to_json(self) -> Dict[str, Any]:
        return {'month': self.month, 'issues': self.issues,
                'returns': self.returns, 'overdue': self.overdue}

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1] if 1 <= self.month <= 12 else ''


@dataclass
class CategoryStats:
    category: str
    book_count: int = 0
    borrow_count: int = 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'CategoryStats':
        return cls(category=_text(data.get('category') or 'Unknown'),
                   book_count=as_int(data.get('book_count')),
                   borrow_count=as_int(data.get('borrow_count')))

    def to_json(self) -> Dict[str, Any]:
        return {'category': self.category, 'book_count': self.book_count,
                'borrow_count': self.borrow_count}


@dataclass
class YearlyStats:
    year: int
    total_issues: int = 0
    total_returns: int = 0
    unique_borrowers: int = 0
    unique_books: int = 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'YearlyStats':
        return cls(
            year=as_int(data.get('year')),
            total_issues=as_int(data.get('total_issues')),
            total_returns=as_int(data.get('total_returns')),
            unique_borrowers=as_int(data.get('unique_borrowers')),
            unique_books=as_int(data.get('unique_books')),
        )

    def to_json(self) -> Dict[str, Any]:
        return {'year': self.year, 'total_issues': self.total_issues,
                'total_returns': self.total_returns,
                'unique_borrowers': self.unique_borrowers, 'unique_books': self.unique_books}


@dataclass
class Pagination:
    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = 0
    has_more: bool = False

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> 'Pagination':
        return cls(
            page=as_int(data.get('page'), 1),
            limit=as_int(data.get('limit')),
            total=as_int(data.get('total')),
            total_pages=as_int(data.get('totalPages')),
            has_more=data.get('hasMore') is True,
        )

    def to_json(self) -> Dict[str, Any]:
        return {'page': self.page, 'limit': self.limit, 'total': self.total,
                'totalPages': self.total_pages, 'hasMore': self.has_more}


@dataclass
class Page(Generic[T]):
    """One page of a paginated list."""

    items: List[T] = field(default_factory=list)
    pagination: Pagination = field(default_factory=Pagination)
