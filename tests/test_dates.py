from datetime import datetime, timedelta, timezone

import pytest

from vcardcodec.dates import DateAndOrTime, format_date_and_or_time, parse_date_and_or_time


@pytest.mark.parametrize('value', [
    '19901231',
    '--0315',
    '1990',
    '199012',
    '---15',
    '--02',
    '20240101T120000Z',
    '20240601T083000+0500',
    '20090808T1430-0500',
    'T1430',
    'T102200Z',
])
def test_canonical_forms_round_trip(value):
    assert format_date_and_or_time(parse_date_and_or_time(value)) == value


def test_full_date():
    result = parse_date_and_or_time('19960415')

    assert (result.year, result.month, result.day) == (1996, 4, 15)
    assert not result.has_time


def test_date_without_year():
    result = parse_date_and_or_time('--0203')

    assert result.year is None
    assert (result.month, result.day) == (2, 3)


def test_day_only():
    result = parse_date_and_or_time('---15')

    assert (result.year, result.month, result.day) == (None, None, 15)


def test_reduced_accuracy_year():
    result = parse_date_and_or_time('1990')

    assert result.year == 1990
    assert result.month is None
    assert result.day is None


def test_date_time_with_offset():
    result = parse_date_and_or_time('20090808T1430-0500')

    assert (result.year, result.month, result.day) == (2009, 8, 8)
    assert (result.hour, result.minute, result.second) == (14, 30, None)
    assert result.utc_offset == '-0500'
    assert result.has_time


def test_extended_forms_normalize_to_basic():
    assert format_date_and_or_time(parse_date_and_or_time('1990-04-15')) == '19900415'
    assert format_date_and_or_time(parse_date_and_or_time('--03-15')) == '--0315'
    assert format_date_and_or_time(parse_date_and_or_time('2008-04-24T19:52:43Z')) == '20080424T195243Z'


def test_extended_offset_is_kept_verbatim():
    result = parse_date_and_or_time('T10:22:00+05:00')

    assert (result.hour, result.minute, result.second) == (10, 22, 0)
    assert result.utc_offset == '+05:00'
    assert format_date_and_or_time(result) == 'T102200+05:00'


def test_lower_case_designators():
    result = parse_date_and_or_time('20240101t120000z')

    assert result.utc_offset == 'Z'
    assert format_date_and_or_time(result) == '20240101T120000Z'


def test_whitespace_is_ignored():
    assert parse_date_and_or_time(' 1990 12 31 ') == DateAndOrTime(1990, 12, 31)


@pytest.mark.parametrize('value', ['', '   ', 'circa 1800', 'unknown', 'Tomorrow', '--'])
def test_unparseable_values(value):
    assert parse_date_and_or_time(value) is None


def test_from_datetime_utc():
    value = DateAndOrTime.from_datetime(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))

    assert format_date_and_or_time(value) == '20240101T120000Z'


def test_from_datetime_converts_to_utc():
    moment = datetime(2024, 1, 1, 17, 30, 5, tzinfo=timezone(timedelta(hours=5)))

    assert str(DateAndOrTime.from_datetime(moment)) == '20240101T123005Z'


def test_equality():
    assert parse_date_and_or_time('--0315') == DateAndOrTime(month=3, day=15)
    assert parse_date_and_or_time('--0315') != DateAndOrTime(year=2000, month=3, day=15)


def test_fractional_seconds_are_ignored():
    result = parse_date_and_or_time('2021-01-01T12:00:00.000Z')

    assert result == DateAndOrTime(2021, 1, 1, 12, 0, 0, 'Z', has_time=True)
    assert format_date_and_or_time(result) == '20210101T120000Z'


def test_text_after_leading_digits_is_ignored():
    assert parse_date_and_or_time('1990-12-31 (approx)') == DateAndOrTime(1990, 12, 31)


def test_designator_without_time_has_no_time():
    result = parse_date_and_or_time('1990T')

    assert result == DateAndOrTime(year=1990)
    assert not result.has_time
    assert format_date_and_or_time(result) == '1990'
