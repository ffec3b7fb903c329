"""Display cleanup for Hindi text coming from the database."""
import re

from libdesk.utils.legacy_hindi import (
    contains_devanagari,
    looks_like_legacy_hindi,
    normalize_legacy_hindi_to_unicode,
    unicode_to_krutidev_approx,
)

__all__ = [
    'contains_devanagari',
    'looks_like_legacy_hindi',
    'unicode_to_krutidev_approx',
    'normalize_hindi_for_display',
]

# English prefixes ("Overdue:", "Issued:") that were once run through the
# KrutiDev converter by mistake and stored in their garbled form.
_GARBLED_PREFIXES = (
    re.compile(r'^वृअमतकनमरू\s+'),
    re.compile(r'^प्ॅनमकरू\s+'),
    re.compile(r'^ठवइ\s+श्वीदेवद\s+'),
)

_LEADING_SYMBOLS = ("'", '"', '*', '`')


def _clean_garbled_text(text: str) -> str:
    cleaned = text
    for pattern in _GARBLED_PREFIXES:
        cleaned = pattern.sub('', cleaned, count=1)
    return cleaned.strip()


def _strip_leading_symbols(text: str) -> str:
    result = text.lstrip()
    while result and result[0] in _LEADING_SYMBOLS:
        result = result[1:].lstrip()
    return result


def normalize_hindi_for_display(text: str) -> str:
    """Normalize legacy Hindi, drop garbled prefixes and leading quote marks."""
    result = normalize_legacy_hindi_to_unicode(text or '')
    result = _clean_garbled_text(result)
    result = _strip_leading_symbols(result)
    return result.strip()
