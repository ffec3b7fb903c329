"""Indian-style date formatting (``dd/MM/yyyy``)."""
from datetime import date, datetime
from typing import Optional

DATE_FORMAT = '%d/%m/%Y'
DATETIME_FORMAT = '%d/%m/%Y %I:%M %p'


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO dates and timestamps; aware values are moved to local time."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_date_indian(value: Optional[str]) -> str:
    """``2024-03-05`` -> ``05/03/2024``. Unparseable input is returned as is."""
    if not value:
        return ''
    if isinstance(value, (date, datetime)):
        return value.strftime(DATE_FORMAT)
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.strftime(DATE_FORMAT)


def format_datetime_indian(value: Optional[str]) -> str:
    if not value:
        return ''
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.strftime(DATETIME_FORMAT)


def current_date_indian() -> str:
    return datetime.now().strftime(DATE_FORMAT)


def current_datetime_indian() -> str:
    return datetime.now().strftime(DATETIME_FORMAT)
