"""Text, date, request and export helpers."""
from datetime import date

import pytest

from libdesk.utils.date_formatter import format_date_indian, format_datetime_indian
from libdesk.utils.exporters import (build_report_table, export_report, report_filename,
                                     rows_to_csv)
from libdesk.utils.hindi_text import normalize_hindi_for_display
from libdesk.utils.legacy_hindi import (contains_devanagari, krutidev_to_unicode,
                                        looks_like_legacy_hindi,
                                        normalize_legacy_hindi_to_unicode,
                                        unicode_to_krutidev_approx)
from libdesk.utils.request_helpers import paginated, parse_id_list, parse_positive_int


@pytest.mark.parametrize('legacy, expected', [
    ('xksnku', 'गोदान'),
    ('izsepan', 'प्रेमचंद'),
    ('fgUnh', 'हिन्दी'),
    ('dekZ', 'कर्मा'),
    ('iqLrd', 'पुस्तक'),
])
def test_krutidev_to_unicode(legacy, expected):
    assert krutidev_to_unicode(legacy) == expected


def test_legacy_detection():
    assert looks_like_legacy_hindi('xksnku izsepan;')
    assert not looks_like_legacy_hindi('izsepan')
    assert not looks_like_legacy_hindi('गोदान;')
    assert not looks_like_legacy_hindi('')
    assert contains_devanagari('Godan गोदान')


def test_reverse_mapping_for_search():
    assert unicode_to_krutidev_approx('राम') == 'jke'
    assert unicode_to_krutidev_approx('abc') == 'abc'


def test_normalize_keeps_english_prefix():
    assert normalize_legacy_hindi_to_unicode('Overdue: fo|ky; iqLrd') == 'Overdue: विद्यालय पुस्तक'
    assert normalize_legacy_hindi_to_unicode('Overdue: Clean Code') == 'Overdue: Clean Code'
    assert normalize_legacy_hindi_to_unicode('गोदान') == 'गोदान'
    assert normalize_legacy_hindi_to_unicode(None) == ''


def test_display_cleanup():
    assert normalize_hindi_for_display('वृअमतकनमरू गोदान') == 'गोदान'
    assert normalize_hindi_for_display("'गोदान") == 'गोदान'
    assert normalize_hindi_for_display('  Clean Code ') == 'Clean Code'


def test_indian_dates():
    assert format_date_indian('2024-03-05') == '05/03/2024'
    assert format_datetime_indian('2024-03-05 14:30:00') == '05/03/2024 02:30 PM'
    assert format_date_indian(None) == ''
    assert format_date_indian('garbage') == 'garbage'


def test_request_number_parsing():
    assert parse_positive_int('12abc', 5) == 12
    assert parse_positive_int('0', 5) == 5
    assert parse_positive_int('-3', 5) == 5
    assert parse_positive_int(None, 5) == 5
    assert parse_id_list([1, '2', 'x', True, 2.7, None, float('nan')]) == [1, 2, 2]
    assert parse_id_list([2 ** 63 - 1, 2 ** 63, '1e19', float('inf')]) == [2 ** 63 - 1]
    assert parse_positive_int(str(2 ** 64), 5) == 5


def test_pagination_envelope():
    assert paginated([], 3, 10, 25)['pagination'] == {
        'page': 3, 'limit': 10, 'total': 25, 'totalPages': 3, 'hasMore': False,
    }


def test_csv_quoting():
    assert rows_to_csv(['a', 'b'], [['x,y', 1]], bom=False) == 'a,b\n"x,y",1\n'
    assert rows_to_csv(['a'], [{'a': 'say "hi"'}], bom=False) == 'a\n"say ""hi"""\n'
    assert rows_to_csv(['a'], [['x\ry'], ['p\nq']], bom=False) == 'a\n"x\ry"\n"p\nq"\n'
    assert rows_to_csv(['a'], []).startswith('\ufeff')


def test_report_tables():
    assert build_report_table('popular_books', []) == (['Message'], [['No data']])

    headers, rows = build_report_table('monthly_stats', [
        {'month': 1, 'issues': 4, 'returns': 2, 'overdue': 1},
    ])
    assert headers == ['Month', 'Issues', 'Returns', 'Overdue']
    assert rows == [['Jan', 4, 2, 1]]

    headers, rows = build_report_table('overdue', [
        {'title': 'xksnku izsepan;', 'member_name': 'Asha', 'due_date': '2024-03-05',
         'days_overdue': 3},
    ])
    assert rows[0][1:] == ['Asha', '05/03/2024', 3]

    with pytest.raises(ValueError):
        build_report_table('fines', [])


def test_export_report_formats():
    items = [{'title': 'Godan', 'author': 'Premchand', 'borrow_count': 2}]

    assert export_report('popular_books', items, 'pdf').startswith(b'%PDF')
    csv_bytes = export_report('popular_books', items, 'csv')
    assert csv_bytes.decode('utf-8').splitlines()[1] == '1,Godan,Premchand,Uncategorized,2'
    with pytest.raises(ValueError):
        export_report('popular_books', items, 'xml')


def test_report_filename():
    assert report_filename('overdue', 'csv', date(2024, 3, 5)) == 'report_overdue_2024-03-05.csv'
