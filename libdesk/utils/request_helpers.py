"""Helpers for reading query parameters and request bodies."""
import math
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app, request

# Largest value an sqlite INTEGER column can hold
SQLITE_MAX_INTEGER = 2 ** 63 - 1


def parse_positive_int(value: Any, fallback: int) -> int:
    """Leading integer of ``value`` when it is > 0, else ``fallback``."""
    number = _leading_int(value)
    if number is None or number <= 0:
        return fallback
    return number


def parse_non_negative_int(value: Any, fallback: int) -> int:
    number = _leading_int(value)
    if number is None or number < 0:
        return fallback
    return number


def _leading_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= SQLITE_MAX_INTEGER else None
    text = str(value).strip()
    digits = ''
    for index, char in enumerate(text):
        if char.isdigit() or (index == 0 and char in '+-'):
            digits += char
        else:
            break
    try:
        number = int(digits)
    except ValueError:
        return None
    return number if abs(number) <= SQLITE_MAX_INTEGER else None


def get_page_args() -> Tuple[int, int, int]:
    """Read ``page`` and ``limit`` from the query string.

    Returns:
        Tuple of (page, limit, offset). ``limit`` is capped at
        ``MAX_PAGE_SIZE``.
    """
    page = parse_positive_int(request.args.get('page'), 1)
    limit = min(
        parse_positive_int(request.args.get('limit'), current_app.config['DEFAULT_PAGE_SIZE']),
        current_app.config['MAX_PAGE_SIZE']
    )
    page = min(page, SQLITE_MAX_INTEGER // limit)
    return page, limit, (page - 1) * limit


def paginated(data: List[Dict[str, Any]], page: int, limit: int, total: int) -> Dict[str, Any]:
    """Build the ``{data, pagination}`` envelope used by list endpoints."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'data': data,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': total_pages,
            'hasMore': page < total_pages,
        },
    }


def parse_id_list(ids: Any) -> List[int]:
    """Keep the numeric entries of a JSON id list that fit an sqlite INTEGER."""
    valid = []
    for value in ids:
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            number = value
        else:
            try:
                as_float = float(value)
            except (TypeError, ValueError):
                continue
            if not math.isfinite(as_float):
                continue
            number = int(as_float)
        if abs(number) <= SQLITE_MAX_INTEGER:
            valid.append(number)
    return valid


def get_json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def blank_to_none(value: Any) -> Optional[str]:
    """Trimmed string, or None for missing/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
