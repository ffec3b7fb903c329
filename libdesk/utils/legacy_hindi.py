"""KrutiDev legacy Hindi detection and conversion.

Book titles and member names imported from older spreadsheets are often typed
in the KrutiDev font: plain ASCII that only reads as Hindi when rendered with
that font. This module detects such text, converts it to Unicode Devanagari,
and produces an approximate KrutiDev spelling of Unicode text so that a
Devanagari search term can still find rows stored in the legacy encoding.
"""
import logging
import re
from typing import Dict

logger = logging.getLogger(__name__)

DEVANAGARI_RE = re.compile(r'[ऀ-ॿ]')
_LETTER_RE = re.compile(r'[A-Za-z]')
_LEGACY_MARKER_RE = re.compile(r'[;*]')

# KrutiDev glyph sequence -> Unicode. 'f' (pre-base i matra) and 'Z' (reph)
# are positional and handled after the table pass.
KRUTIDEV_TO_UNICODE: Dict[str, str] = {
    # independent vowels
    'vkS': 'औ', 'vks': 'ओ', 'v‚': 'ऑ', 'vk': 'आ', 'v': 'अ',
    'bZ': 'ई', 'b': 'इ', 'm': 'उ', 'Å': 'ऊ', '_': 'ऋ',
    ',s': 'ऐ', ',': 'ए',
    # conjuncts
    '{k': 'क्ष', '{': 'क्ष्', '=': 'त्र', '«': 'त्र्',
    'K': 'ज्ञ', 'J': 'श्र', 'Ùk': 'त्त', 'Ù': 'त्त्', 'Ø': 'क्र',
    'ç': 'प्र', 'æ': 'द्र', 'Ì': 'द्द', 'Í': 'ट्ट', 'Î': 'ट्ठ',
    'Ï': 'ड्ड', 'Ë': 'द्ध', '|': 'द्य', '}': 'द्व', 'z': '्र',
    # consonants, full and half forms
    'Dk': 'क', 'd': 'क', 'D': 'क्',
    '[k': 'ख', '[': 'ख्',
    'Xk': 'ग', 'x': 'ग', 'X': 'ग्',
    '?k': 'घ', '?': 'घ्', '³': 'ङ',
    'Pk': 'च', 'p': 'च', 'P': 'च्', 'N': 'छ',
    'Tk': 'ज', 't': 'ज', 'T': 'ज्',
    '>': 'झ', '÷': 'झ्', '¥': 'ञ',
    'V': 'ट', 'B': 'ठ', 'M': 'ड', '<': 'ढ',
    '.k': 'ण', '.': 'ण्',
    'Rk': 'त', 'r': 'त', 'R': 'त्',
    'Fk': 'थ', 'F': 'थ्', 'n': 'द',
    '/k': 'ध', '/': 'ध्',
    'Uk': 'न', 'u': 'न', 'U': 'न्',
    'Ik': 'प', 'i': 'प', 'I': 'प्',
    'Q': 'फ', '¶': 'फ्',
    'Ck': 'ब', 'c': 'ब', 'C': 'ब्',
    'Hk': 'भ', 'H': 'भ्',
    'Ek': 'म', 'e': 'म', 'E': 'म्',
    ';': 'य', '¸': 'य्', 'j': 'र',
    'Yk': 'ल', 'y': 'ल', 'Y': 'ल्', 'G': 'ळ',
    'Ok': 'व', 'o': 'व', 'O': 'व्',
    "'k": 'श', "'": 'श्',
    '"k': 'ष', '"': 'ष्',
    'Lk': 'स', 'l': 'स', 'L': 'स्',
    'g': 'ह',
    # dependent vowel signs and modifiers
    'kS': 'ौ', 'ks': 'ो', 'k': 'ा', 'h': 'ी', 'q': 'ु', 'w': 'ू',
    '`': 'ृ', 's': 'े', 'S': 'ै', 'W': 'ॉ',
    'a': 'ं', '¡': 'ँ', '%': 'ः', '~': '्', '+': '़',
    # punctuation
    'A': '।', ']': ',', '-': '.', '&': '-', '\\': '?', '@': '/',
    '¼': '(', '½': ')', '^': '‘', '*': '’', 'Þ': '“', 'ß': '”',
}

_KRUTIDEV_RE = re.compile(
    '|'.join(re.escape(key) for key in sorted(KRUTIDEV_TO_UNICODE, key=len, reverse=True))
)

_CONSONANT_CLUSTER = r'(?:[क-ह]़?्)*[क-ह]़?'
_PRE_BASE_I_RE = re.compile(r'f(' + _CONSONANT_CLUSTER + r')')
_REPH_RE = re.compile(r'(' + _CONSONANT_CLUSTER + r')([ािीुूृेैोौंँ]*)Z')

# Simplified reverse mapping used only to build search terms.
UNICODE_TO_KRUTIDEV: Dict[str, str] = {
    'अ': 'v', 'आ': 'vk', 'इ': 'b', 'ई': 'bZ', 'उ': 'm', 'ऊ': 'Å',
    'ऋ': '_', 'ए': ',', 'ऐ': ',S', 'ओ': 'vks', 'औ': 'vkS',
    'क': 'd', 'ख': '[k', 'ग': 'x', 'घ': '?k', 'ङ': 'M',
    'च': 'p', 'छ': 'N', 'ज': 't', 'झ': '>', 'ञ': '×',
    'ट': 'V', 'ठ': 'B', 'ड': 'M', 'ढ': '<', 'ण': '.k',
    'त': 'r', 'थ': 'Fk', 'द': 'n', 'ध': '/k', 'न': 'u',
    'प': 'i', 'फ': 'Q', 'ब': 'c', 'भ': 'Hk', 'म': 'e',
    'य': ';', 'र': 'j', 'ल': 'y', 'व': 'o',
    'श': "'k", 'ष': '"k', 'स': 'l', 'ह': 'g',
    'क्ष': '{k', 'त्र': '=', 'ज्ञ': 'K',
    'ा': 'k', 'ि': 'f', 'ी': 'h', 'ु': 'q', 'ू': 'w', 'ृ': '^',
    'े': 's', 'ै': 'S', 'ो': 'ks', 'ौ': 'kS', '्': '',
    'ं': 'a', 'ः': '%', 'ँ': '¡', '।': 'A', '॥': 'AA',
    '०': '0', '१': '1', '२': '2', '३': '3', '४': '4',
    '५': '5', '६': '6', '७': '7', '८': '8', '९': '9',
}
_LONGEST_UNICODE_KEY = max(len(key) for key in UNICODE_TO_KRUTIDEV)

# English fragments used in generated notification and activity titles.
KNOWN_PREFIXES = (
    'Overdue:',
    'Issued:',
    'Returned:',
    'New Book Added:',
    'New Book:',
    'New member:',
    'Due Soon:',
    'borrowed',
    'returned',
    'has not returned',
    'which was due on',
    'by',
    'has been added to the library',
    'registered',
)

_QUOTED_RE = re.compile(r'"([^"]+)"')


def contains_devanagari(text: str) -> bool:
    return bool(DEVANAGARI_RE.search(text or ''))


def looks_like_legacy_hindi(text: str) -> bool:
    """Heuristic for KrutiDev text: mostly ASCII letters plus ``;`` or ``*``.

    Example:
        >>> looks_like_legacy_hindi('izsepan')
        False
        >>> looks_like_legacy_hindi('xksnku izsepan;')
        True
    """
    s = (text or '').strip()
    if not s or contains_devanagari(s):
        return False
    letters = len(_LETTER_RE.findall(s))
    if letters < 6:
        return False
    if not _LEGACY_MARKER_RE.search(s):
        return False
    return letters / max(len(s), 1) >= 0.55


def krutidev_to_unicode(text: str) -> str:
    """Convert KrutiDev-encoded text to Unicode Devanagari.

    Characters without a KrutiDev meaning (digits, spaces, most
    punctuation) are kept as they are.
    """
    if not text:
        return text or ''
    converted = _KRUTIDEV_RE.sub(lambda m: KRUTIDEV_TO_UNICODE[m.group(0)], text)
    # ि is typed before its consonant cluster
    converted = _PRE_BASE_I_RE.sub(r'\1ि', converted)
    # reph is typed after the cluster and its vowel signs
    converted = _REPH_RE.sub(r'र्\1\2', converted)
    return converted


def unicode_to_krutidev_approx(text: str) -> str:
    """Approximate KrutiDev spelling of Unicode Hindi, for search only."""
    if not contains_devanagari(text):
        return text

    out = []
    i = 0
    while i < len(text):
        for size in range(min(_LONGEST_UNICODE_KEY, len(text) - i), 0, -1):
            chunk = text[i:i + size]
            if chunk in UNICODE_TO_KRUTIDEV:
                out.append(UNICODE_TO_KRUTIDEV[chunk])
                i += size
                break
        else:
            out.append(text[i])
            i += 1
    return ''.join(out)


def _convert_if_devanagari(text: str):
    converted = krutidev_to_unicode(text)
    return converted if contains_devanagari(converted) else None


def normalize_legacy_hindi_to_unicode(text: str) -> str:
    """Return ``text`` with any KrutiDev portions converted to Unicode.

    Text that already contains Devanagari is returned unchanged. Titles
    that start with one of the known English prefixes keep the prefix and
    only the remainder is converted. Otherwise quoted segments are
    converted individually, and as a last resort the whole string.
    A conversion is only used when it actually yields Devanagari.
    """
    if not text or contains_devanagari(text):
        return text or ''

    for prefix in KNOWN_PREFIXES:
        if text.startswith(prefix):
            rest = text[len(prefix):].strip()
            if rest and looks_like_legacy_hindi(rest):
                converted = _convert_if_devanagari(rest)
                if converted is not None:
                    return f'{prefix} {converted}'
            return text

    result = text
    any_converted = False
    for match in _QUOTED_RE.finditer(text):
        quoted = match.group(1)
        if looks_like_legacy_hindi(quoted):
            converted = _convert_if_devanagari(quoted)
            if converted is not None:
                result = result.replace(f'"{quoted}"', f'"{converted}"', 1)
                any_converted = True
    if any_converted:
        return result

    if not looks_like_legacy_hindi(text):
        return text
    converted = _convert_if_devanagari(text)
    if converted is None:
        logger.debug('Legacy Hindi conversion produced no Devanagari for %r', text)
        return text
    return converted
