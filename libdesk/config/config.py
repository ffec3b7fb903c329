"""Configuration file for the Flask application.

This module contains all configuration settings for the library management
system API, including database paths, upload settings, authentication and
library business rules. Values are read from the environment; a ``.env``
file in the working directory (then the project root) is loaded first.
"""
import os
import tempfile
from typing import Dict, List, Set, Tuple

from dotenv import load_dotenv

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def load_environment() -> None:
    """Load ``.env`` from the working directory, then from the project root.

    Variables already set in the environment are never overwritten, so the
    working directory file wins over the project one.
    """
    load_dotenv(os.path.join(os.getcwd(), '.env'), override=False)
    load_dotenv(os.path.join(PROJECT_ROOT, '.env'), override=False)


load_environment()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off', '')


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def parse_duration(value: str, default: int = 3600) -> int:
    """Convert an expiry string such as ``1h``, ``30m`` or ``7d`` to seconds.

    Args:
        value: Duration string. Plain integers are taken as seconds.
        default: Seconds returned when the value cannot be parsed.

    Returns:
        Number of seconds.

    Example:
        >>> parse_duration('2h')
        7200
    """
    if value is None:
        return default
    text = str(value).strip().lower()
    if not text:
        return default
    units = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}
    try:
        if text[-1] in units:
            return int(float(text[:-1]) * units[text[-1]])
        return int(text)
    except ValueError:
        return default


class Config:
    """Base configuration class for the Flask application.

    Attributes:
        ENV_NAME (str): Deployment environment; ``production`` enables strict checks.
        SECRET_KEY (str): Flask secret key.
        JWT_SECRET (str): Key used to sign access tokens (HS256).
        JWT_EXPIRES_IN (int): Token lifetime in seconds.
        DATABASE_PATH (str): Absolute path to the SQLite database file.
        UPLOAD_FOLDER (str): Directory for uploaded cover images and photos.
        MAX_IMAGE_SIZE (int): Maximum image upload size in bytes.
        MAX_CONTENT_LENGTH (int): Maximum request body size (large imports).
        CORS_ORIGINS (List[str]): Allowed browser origins.
        DEFAULT_PAGE_SIZE (int): Page size used when ``limit`` is missing.
        MAX_PAGE_SIZE (int): Upper bound for ``limit``.
    """

    ENV_NAME: str = os.environ.get('LIBDESK_ENV', os.environ.get('NODE_ENV', 'development'))
    IS_PRODUCTION: bool = ENV_NAME == 'production'
    TESTING: bool = False

    SECRET_KEY: str = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Authentication
    JWT_SECRET: str = os.environ.get('JWT_SECRET', '')
    JWT_ALGORITHM: str = 'HS256'
    JWT_EXPIRES_IN: int = parse_duration(os.environ.get('JWT_EXPIRES_IN', '1h'))

    # Database configuration
    DATABASE_PATH: str = os.environ.get('DATABASE_PATH') or os.path.join(
        PROJECT_ROOT, 'data', 'library.db'
    )

    # Upload configuration
    UPLOAD_FOLDER: str = os.environ.get('UPLOAD_FOLDER') or os.path.join(PROJECT_ROOT, 'uploads')
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10MB per image
    MAX_CONTENT_LENGTH: int = 100 * 1024 * 1024  # 100MB for large book imports
    ALLOWED_IMAGE_EXTENSIONS: Set[str] = {
        'jpeg', 'jpg', 'png', 'gif', 'webp', 'bmp', 'tiff', 'tif'
    }
    ALLOWED_IMPORT_EXTENSIONS: Set[str] = {'csv', 'xlsx', 'xls'}

    # HTTP server
    HOST: str = os.environ.get('HOST', 'localhost')
    PORT: int = _env_int('PORT', 3000)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', '').split(',')
        if origin.strip()
    ]
    LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO')

    # Listing and import limits
    DEFAULT_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 1000
    IMPORT_BATCH_SIZE: int = 500
    MAX_IMPORT_ERRORS: int = 100
    IMPORT_ERRORS_RETURNED: int = 50

    # Library business rules
    DUE_SOON_DAYS: int = 2
    DEFAULT_MAX_BOOKS: int = 3
    DEFAULT_LOAN_PERIOD_DAYS: int = 14
    MEMBERSHIP_YEARS: int = 1

    # Background jobs
    SCHEDULER_ENABLED: bool = _env_bool('SCHEDULER_ENABLED', True)
    OVERDUE_REFRESH_MINUTES: int = _env_int('OVERDUE_REFRESH_MINUTES', 60)

    # Seed data
    DEFAULT_ADMIN_USERNAME: str = os.environ.get('DEFAULT_ADMIN_USERNAME', 'admin')
    DEFAULT_ADMIN_PASSWORD: str = os.environ.get('DEFAULT_ADMIN_PASSWORD', 'Library#123')

    # name -> (max_books, loan_period_days)
    DEFAULT_MEMBER_CATEGORIES: Dict[str, Tuple[int, int]] = {
        'guest': (3, 14),
        'faculty': (10, 30),
        'staff': (5, 21),
    }

    # (name, description)
    DEFAULT_BOOK_CATEGORIES: List[Tuple[str, str]] = [
        ('Fiction', 'Fictional works including novels and short stories'),
        ('Non-Fiction', 'Factual and informational books'),
        ('Science', 'Scientific literature and research'),
        ('History', 'Historical accounts and analysis'),
        ('Biography', 'Life stories of notable individuals'),
        ('Literature', 'Classical and modern literature'),
        ('Philosophy', 'Philosophical works and treatises'),
        ('Psychology', 'Psychological studies and self-help'),
        ('Art', 'Art history and techniques'),
        ('Music', 'Music theory and history'),
        ('Technology', 'Technology and computing'),
        ('Mathematics', 'Mathematical studies'),
        ('Physics', 'Physical sciences'),
        ('Chemistry', 'Chemical sciences'),
        ('Biology', 'Biological sciences'),
        ('Medicine', 'Medical literature'),
        ('Engineering', 'Engineering disciplines'),
        ('Computer Science', 'Computing and programming'),
        ('Business', 'Business and management'),
        ('Economics', 'Economic studies'),
        ('Politics', 'Political science'),
        ('Law', 'Legal studies'),
        ('Religion', 'Religious texts and studies'),
        ('Education', 'Educational materials'),
        ('Sports', 'Sports and athletics'),
        ('Travel', 'Travel guides and literature'),
        ('Cooking', 'Culinary arts'),
        ('Health', 'Health and wellness'),
        ('Self-Help', 'Personal development'),
        ('Poetry', 'Poetic works'),
        ('Drama', 'Theatrical works'),
        ('Romance', 'Romantic fiction'),
        ('Mystery', 'Mystery and detective fiction'),
        ('Thriller', 'Thriller and suspense'),
        ('Fantasy', 'Fantasy literature'),
        ('Science Fiction', 'Science fiction works'),
        ('Horror', 'Horror fiction'),
        ('Adventure', 'Adventure stories'),
        ('Children', 'Childrens literature'),
        ('Young Adult', 'Young adult fiction'),
        ('Reference', 'Reference materials'),
        ('Comics', 'Comic books and graphic novels'),
    ]

    DEFAULT_DASHBOARD_WIDGETS: List[str] = [
        'stats_cards', 'charts', 'recent_issues',
        'popular_books', 'overdue_alerts', 'quick_actions',
    ]

    @classmethod
    def validate(cls) -> None:
        """Refuse to run in production without a signing secret."""
        if cls.IS_PRODUCTION and not cls.JWT_SECRET:
            raise RuntimeError(
                'Missing required env var JWT_SECRET. Refusing to start in production.'
            )


class TestingConfig(Config):
    """Configuration used by the test-suite."""

    TESTING: bool = True
    IS_PRODUCTION: bool = False
    SCHEDULER_ENABLED: bool = False
    JWT_SECRET: str = 'test-secret'
    DATABASE_PATH: str = os.path.join(tempfile.gettempdir(), 'libdesk-test.db')
    UPLOAD_FOLDER: str = os.path.join(tempfile.gettempdir(), 'libdesk-test-uploads')
