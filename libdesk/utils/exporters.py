"""CSV and PDF rendering of tabular data.

Used by the export endpoint for catalogue dumps and by the client to save
report tables.
"""
import calendar
import io
from datetime import date
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from libdesk.utils.date_formatter import format_date_indian, parse_date
from libdesk.utils.hindi_text import normalize_hindi_for_display

UTF8_BOM = '\ufeff'
CSV_SPECIAL = (',', '"', '\r', '\n')

Row = Union[Mapping[str, Any], Sequence[Any]]


def _cell(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _csv_field(text: str) -> str:
    if any(ch in text for ch in CSV_SPECIAL):
        return '"' + text.replace('"', '""') + '"'
    return text


def _row_values(headers: Sequence[str], row: Row) -> List[str]:
    if isinstance(row, Mapping):
        return [_cell(row.get(header)) for header in headers]
    return [_cell(value) for value in row]


def rows_to_csv(headers: Sequence[str], rows: Sequence[Row], bom: bool = True) -> str:
    """Render rows as CSV text.

    Fields containing a comma, quote, CR or LF are quoted with inner quotes
    doubled. Rows may be dicts keyed by header or plain sequences.

    Args:
        headers: Column names, written as the first line.
        rows: Data rows.
        bom: Prefix a UTF-8 byte-order mark so Excel detects the encoding.

    Returns:
        The CSV document.

    Example:
        >>> rows_to_csv(['a', 'b'], [['x,y', 1]], bom=False)
        'a,b\\n"x,y",1\\n'
    """
    buffer = io.StringIO()
    if bom:
        buffer.write(UTF8_BOM)
    lines = [[_cell(header) for header in headers]]
    lines.extend(_row_values(headers, row) for row in rows)
    for values in lines:
        buffer.write(','.join(_csv_field(value) for value in values))
        buffer.write('\n')
    return buffer.getvalue()


def rows_to_pdf(title: str, headers: Sequence[str], rows: Sequence[Row]) -> bytes:
    """Render rows as a paginated PDF table with a repeated header row."""
    buffer = io.BytesIO()
    pagesize = landscape(A4) if len(headers) > 6 else A4
    doc = SimpleDocTemplate(buffer, pagesize=pagesize,
                            leftMargin=12 * mm, rightMargin=12 * mm,
                            topMargin=12 * mm, bottomMargin=12 * mm,
                            title=title)
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle('cell', parent=styles['Normal'], fontSize=8, leading=10)
    header_style = ParagraphStyle('header', parent=cell_style, fontName='Helvetica-Bold')

    data = [[Paragraph(_escape(header), header_style) for header in headers]]
    for row in rows:
        data.append([Paragraph(_escape(value), cell_style)
                     for value in _row_values(headers, row)])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.black),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('INNERGRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('BOX', (0, 0), (-1, -1), 0.5, colors.black),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
    ]))

    story = [
        Paragraph(_escape(title), styles['Title']),
        Paragraph(f'Generated {format_date_indian(date.today())}', styles['Normal']),
        Spacer(1, 6 * mm),
        table,
    ]
    doc.build(story)
    return buffer.getvalue()


def _escape(text: str) -> str:
    return (text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;'))


def _days_overdue(item: Mapping[str, Any]) -> int:
    if item.get('days_overdue') is not None:
        try:
            return max(int(item['days_overdue']), 0)
        except (TypeError, ValueError):
            pass
    due = parse_date(item.get('due_date'))
    if due is None:
        return 0
    return max((date.today() - due.date()).days, 0)


def _ranked(items: Sequence[Mapping[str, Any]],
            build: Callable[[Mapping[str, Any]], List[Any]]) -> List[List[Any]]:
    return [[index] + build(item) for index, item in enumerate(items, start=1)]


REPORT_TITLES = {
    'popular_books': 'Popular Books',
    'active_members': 'Active Members',
    'monthly_stats': 'Monthly Statistics',
    'category_stats': 'Category Statistics',
    'overdue': 'Overdue Books',
}


def build_report_table(name: str, items: Sequence[Mapping[str, Any]]) -> Tuple[List[str], List[List[Any]]]:
    """Headers and rows for one of the report screens.

    Args:
        name: One of ``REPORT_TITLES``.
        items: Report rows as returned by the API.

    Returns:
        Tuple of (headers, rows). An empty report yields a single
        ``No data`` message row.

    Raises:
        ValueError: For an unknown report name.
    """
    text = normalize_hindi_for_display
    if name == 'popular_books':
        headers = ['Rank', 'Title', 'Author', 'Category', 'Borrows']
        rows = _ranked(items, lambda item: [
            text(item.get('title') or ''), text(item.get('author') or ''),
            item.get('category') or 'Uncategorized', item.get('borrow_count') or 0,
        ])
    elif name == 'active_members':
        headers = ['Rank', 'Name', 'Type', 'Borrowed']
        rows = _ranked(items, lambda item: [
            text(item.get('name') or ''), item.get('member_type') or '',
            item.get('borrow_count') or 0,
        ])
    elif name == 'monthly_stats':
        headers = ['Month', 'Issues', 'Returns', 'Overdue']
        rows = [
            [_month_name(item.get('month')), item.get('issues') or 0,
             item.get('returns') or 0, item.get('overdue') or 0]
            for item in items
        ]
    elif name == 'category_stats':
        headers = ['Category', 'Books', 'Borrows']
        rows = [
            [text(item.get('category') or 'Uncategorized'),
             item.get('book_count') or 0, item.get('borrow_count') or 0]
            for item in items
        ]
    elif name == 'overdue':
        headers = ['Title', 'Member', 'Due Date', 'Days Overdue']
        rows = [
            [text(item.get('title') or 'Unknown'), text(item.get('member_name') or 'Unknown'),
             format_date_indian(item.get('due_date')), _days_overdue(item)]
            for item in items
        ]
    else:
        raise ValueError(f'Unsupported report type: {name}')

    if not rows:
        return ['Message'], [['No data']]
    return headers, rows


def _month_name(month: Any) -> str:
    try:
        number = int(month)
    except (TypeError, ValueError):
        return ''
    return calendar.month_abbr[number] if 1 <= number <= 12 else ''


def export_report(name: str, items: Sequence[Mapping[str, Any]], fmt: str) -> bytes:
    """Render a report table as ``csv`` or ``pdf`` bytes."""
    headers, rows = build_report_table(name, items)
    if fmt == 'csv':
        return rows_to_csv(headers, rows).encode('utf-8')
    if fmt == 'pdf':
        return rows_to_pdf(REPORT_TITLES[name], headers, rows)
    raise ValueError(f'Unsupported export format: {fmt}')


def report_filename(name: str, fmt: str, today: Optional[date] = None) -> str:
    """``report_<name>_<YYYY-MM-DD>.<fmt>``"""
    return f'report_{name}_{(today or date.today()).isoformat()}.{fmt}'
