"""Bulk book import from CSV and XLSX spreadsheets.

Spreadsheets exported by different tools name their columns differently,
so headers are matched against alias lists after normalization. Rows are
upserted in batches: a row updates the book with the same ISBN (or, without
an ISBN, the same title and author) and is inserted otherwise.
"""
import csv
import io
import logging
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import current_app
from openpyxl import load_workbook

from libdesk.models.database import get_db
from libdesk.utils.legacy_hindi import looks_like_legacy_hindi
from libdesk.utils.request_helpers import parse_positive_int

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    'title': ('title', 'book', 'bookname', 'name'),
    'author': ('author', 'authorname'),
    'rack_number': ('rack', 'racknumber', 'rackno', 'racknum', 'racklocation'),
    'isbn': ('isbn',),
    'category': ('category', 'categoryname', 'genre', 'type', 'subject'),
    'description': ('description', 'desc', 'summary', 'about'),
    'publisher': ('publisher', 'publishername', 'pub'),
    'year': ('year', 'yearpublished', 'publishedyear', 'pubyear', 'publicationyear'),
    'copies': ('copy', 'copies', 'totalcopies', 'quantity', 'qty', 'count',
               'noofcopies', 'numberofcopies'),
}

# Keeps title/author lookups under SQLite's bound-parameter limit
_LOOKUP_CHUNK = 200


class ImportFileError(ValueError):
    """The uploaded file cannot be read as a book list."""


def decode_text_buffer(data: bytes) -> str:
    """Decode an uploaded text file that may be UTF-8 or UTF-16.

    Excel often saves CSV as UTF-16LE, with or without a byte-order mark.

    Args:
        data: Raw file contents.

    Returns:
        The decoded text without any byte-order mark.

    Example:
        >>> decode_text_buffer(b'\\xff\\xfeA\\x00')
        'A'
    """
    if not data:
        return ''
    if data.startswith(b'\xef\xbb\xbf'):
        return data[3:].decode('utf-8', errors='replace')
    if data.startswith(b'\xff\xfe'):
        return data[2:].decode('utf-16-le', errors='replace')
    if data.startswith(b'\xfe\xff'):
        return data[2:].decode('utf-16-be', errors='replace')

    sample = data[:2000]
    if sample.count(0) > len(sample) * 0.1:
        return data.decode('utf-16-le', errors='replace')
    return data.decode('utf-8', errors='replace')


def normalize_header(header: Any) -> str:
    """Lower-case a column header and drop whitespace, underscores and dashes."""
    text = str(header or '').lower()
    return ''.join(ch for ch in text if not ch.isspace() and ch not in '_-')


def _cell_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat(' ')
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def read_csv_rows(data: bytes) -> List[Dict[str, str]]:
    """Rows of a CSV file keyed by its header row; blank lines are skipped."""
    reader = csv.reader(io.StringIO(decode_text_buffer(data)))
    header: Optional[List[str]] = None
    rows = []
    for record in reader:
        if not any(cell.strip() for cell in record):
            continue
        if header is None:
            header = [cell.strip() for cell in record]
            continue
        rows.append({
            key: (record[index].strip() if index < len(record) else '')
            for index, key in enumerate(header)
        })
    return rows


def read_xlsx_rows(data: bytes) -> List[Dict[str, str]]:
    """Rows of the first worksheet keyed by its header row."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise ImportFileError(f'Could not read spreadsheet: {e}') from e

    try:
        if not workbook.worksheets:
            raise ImportFileError('No worksheet found in file')
        values = workbook.worksheets[0].iter_rows(values_only=True)
        header: Optional[List[str]] = None
        rows = []
        for record in values:
            cells = [_cell_text(value) for value in record]
            if not any(cells):
                continue
            if header is None:
                header = cells
                continue
            rows.append({
                key: (cells[index] if index < len(cells) else '')
                for index, key in enumerate(header)
                if key
            })
        return rows
    finally:
        workbook.close()


def read_rows(filename: str, data: bytes) -> List[Dict[str, str]]:
    """Dispatch on the file extension.

    Raises:
        ImportFileError: For ``.xls`` and other unsupported types.
    """
    extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    if extension == 'csv':
        return read_csv_rows(data)
    if extension == 'xlsx':
        return read_xlsx_rows(data)
    if extension == 'xls':
        raise ImportFileError('Legacy .xls files are not supported; save the sheet as .xlsx or .csv')
    raise ImportFileError('Only .csv, .xlsx, or .xls files are allowed')


def pick(row: Dict[str, Any], field: str) -> str:
    """Value of the first column of ``row`` matching one of the field's aliases."""
    normalized = {normalize_header(key): value for key, value in row.items()}
    for alias in FIELD_ALIASES[field]:
        if alias in normalized:
            return _cell_text(normalized[alias])
    return ''


def _leading_year(text: str) -> Optional[int]:
    year = parse_positive_int(text, 0)
    return year or None


def parse_book_row(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map one spreadsheet row to book columns, or None without title/author."""
    title = pick(row, 'title')
    author = pick(row, 'author')
    if not title or not author:
        return None
    return {
        'title': title,
        'author': author,
        'rack_number': pick(row, 'rack_number') or None,
        'isbn': pick(row, 'isbn') or None,
        'category': pick(row, 'category') or None,
        'description': pick(row, 'description') or None,
        'publisher': pick(row, 'publisher') or None,
        'year_published': _leading_year(pick(row, 'year')),
        'copies': parse_positive_int(pick(row, 'copies'), 1),
    }


def _existing_ids(batch: List[Dict[str, Any]]) -> Tuple[Dict[str, int], Dict[Tuple[str, str], int]]:
    db = get_db()
    by_isbn: Dict[str, int] = {}
    isbns = sorted({book['isbn'] for book in batch if book['isbn']})
    for start in range(0, len(isbns), _LOOKUP_CHUNK):
        chunk = isbns[start:start + _LOOKUP_CHUNK]
        marks = ','.join('?' for _ in chunk)
        for row in db.execute(f'SELECT id, isbn FROM books WHERE isbn IN ({marks})', chunk):
            by_isbn.setdefault(row['isbn'], row['id'])

    by_title_author: Dict[Tuple[str, str], int] = {}
    pairs = sorted({(book['title'], book['author']) for book in batch})
    for start in range(0, len(pairs), _LOOKUP_CHUNK):
        chunk = pairs[start:start + _LOOKUP_CHUNK]
        conditions = ' OR '.join('(title = ? AND author = ?)' for _ in chunk)
        params = [value for pair in chunk for value in pair]
        for row in db.execute(f'SELECT id, title, author FROM books WHERE {conditions}', params):
            by_title_author.setdefault((row['title'], row['author']), row['id'])
    return by_isbn, by_title_author


def import_books(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Upsert spreadsheet rows into the catalogue.

    Matched books get their title, author, rack number and ISBN replaced;
    category, description, publisher and year are only replaced when the
    row supplies them. Copy counts of existing books are never touched.

    Args:
        rows: Spreadsheet rows keyed by header.

    Returns:
        Summary dict with ``inserted``, ``updated``, ``skipped``,
        ``errors``, ``totalRows``, ``legacyHindiRows`` and ``totalErrors``.
    """
    config = current_app.config
    max_errors = config['MAX_IMPORT_ERRORS']
    batch_size = config['IMPORT_BATCH_SIZE']

    rows = list(rows)
    errors: List[Dict[str, Any]] = []
    books: List[Dict[str, Any]] = []
    skipped = 0
    legacy_rows = 0

    for index, row in enumerate(rows):
        book = parse_book_row(row)
        if book is None:
            skipped += 1
            if len(errors) < max_errors:
                errors.append({'row': index + 2, 'error': 'Missing required Title or Author'})
            continue
        if looks_like_legacy_hindi(book['title']) or looks_like_legacy_hindi(book['author']):
            legacy_rows += 1
        book['row'] = index + 2
        books.append(book)

    db = get_db()
    inserted = 0
    updated = 0
    for start in range(0, len(books), batch_size):
        batch = books[start:start + batch_size]
        by_isbn, by_title_author = _existing_ids(batch)
        for book in batch:
            existing_id = by_isbn.get(book['isbn']) if book['isbn'] else None
            if existing_id is None:
                existing_id = by_title_author.get((book['title'], book['author']))
            try:
                if existing_id is not None:
                    db.execute('''
                        UPDATE books
                        SET title = ?, author = ?, rack_number = ?, isbn = ?,
                            category = COALESCE(?, category),
                            description = COALESCE(?, description),
                            publisher = COALESCE(?, publisher),
                            year_published = COALESCE(?, year_published)
                        WHERE id = ?
                    ''', (book['title'], book['author'], book['rack_number'], book['isbn'],
                          book['category'], book['description'], book['publisher'],
                          book['year_published'], existing_id))
                    updated += 1
                else:
                    cursor = db.execute('''
                        INSERT INTO books (isbn, title, author, rack_number, category,
                                           description, publisher, year_published,
                                           total_copies, available_copies, status)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'available')
                    ''', (book['isbn'], book['title'], book['author'], book['rack_number'],
                          book['category'], book['description'], book['publisher'],
                          book['year_published'], book['copies'], book['copies']))
                    inserted += 1
                    # repeated rows later in the batch update this book
                    by_title_author[(book['title'], book['author'])] = cursor.lastrowid
                    if book['isbn']:
                        by_isbn[book['isbn']] = cursor.lastrowid
            except sqlite3.Error as e:
                if len(errors) < max_errors:
                    errors.append({'row': book['row'], 'error': str(e)})
        db.commit()

    logger.info('Imported books: %d inserted, %d updated, %d skipped',
                inserted, updated, skipped)
    return {
        'inserted': inserted,
        'updated': updated,
        'skipped': skipped,
        'errors': errors[:config['IMPORT_ERRORS_RETURNED']],
        'totalRows': len(rows),
        'legacyHindiRows': legacy_rows,
        'totalErrors': len(errors),
    }
