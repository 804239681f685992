from datetime import datetime, timedelta, timezone

import pytest

from dvrkit.config import JST
from dvrkit.exceptions import MalformedDurationError, MalformedTimestampError
from dvrkit.utils import (
    format_timestamp_jst,
    format_timestamp_jst_file,
    match_duration,
    match_timestamp,
    parse_duration,
    parse_timestamp,
    parse_timestamp_jst_file,
)


def test_parse_duration_all_components():
    assert parse_duration("1h2m3.456s") == timedelta(milliseconds=3723456)


def test_parse_duration_optional_components():
    assert parse_duration("90m") == timedelta(minutes=90)
    assert parse_duration("45s") == timedelta(seconds=45)
    assert parse_duration("2h") == timedelta(hours=2)
    assert parse_duration("1h 30m") == timedelta(hours=1, minutes=30)
    assert parse_duration("1h3.5s") == timedelta(hours=1, seconds=3.5)


def test_parse_duration_iso_prefix_and_case():
    assert parse_duration("PT1H2M") == timedelta(hours=1, minutes=2)
    assert parse_duration("10M") == timedelta(minutes=10)


def test_parse_duration_comma_decimal():
    assert parse_duration("3,5s") == timedelta(seconds=3.5)


@pytest.mark.parametrize("text", ["", "PT", "abc", "1x", "h", "10", "1s2m"])
def test_parse_duration_rejects_malformed(text):
    with pytest.raises(MalformedDurationError):
        parse_duration(text)
    assert match_duration(text) is None


def test_parse_timestamp_defaults_to_jst():
    assert parse_timestamp("2023-11-10T12:30:00") == parse_timestamp("2023-11-10T12:30:00+09:00")
    assert parse_timestamp("2023-11-10T12:30:00") == datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)


def test_parse_timestamp_explicit_offsets():
    assert parse_timestamp("2023-11-10T03:30:00Z") == datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2023-11-10T04:30:00+01:00") == datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2023-11-09T22:30:00-0500") == datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)


def test_parse_timestamp_compact_and_whitespace_forms():
    expected = datetime(2023, 11, 10, 12, 30, 5, tzinfo=JST)
    assert parse_timestamp("20231110T123005") == expected
    assert parse_timestamp("20231110 123005") == expected
    assert parse_timestamp("2023-11-10 12:30:05") == expected
    assert parse_timestamp("2023-11-10t12:30:05") == expected


def test_parse_timestamp_fraction():
    result = parse_timestamp("2023-11-10T12:30:05.250")
    assert result.microsecond == 250000
    assert parse_timestamp("2023-11-10T12:30:05,5").microsecond == 500000


def test_parse_timestamp_accepts_semicolons():
    assert parse_timestamp("2023-11-10T12;30;05.000") == datetime(2023, 11, 10, 12, 30, 5, tzinfo=JST)


@pytest.mark.parametrize("text", ["", "2023-11-10", "12:30:00", "2023-13-01T00:00:00", "yesterday", "10m"])
def test_parse_timestamp_rejects_malformed(text):
    with pytest.raises(MalformedTimestampError):
        parse_timestamp(text)
    assert match_timestamp(text) is None


def test_format_timestamp_jst():
    instant = datetime(2023, 11, 10, 3, 30, 0, 123000, tzinfo=timezone.utc)
    assert format_timestamp_jst(instant) == "2023-11-10T12:30:00.123"
    assert format_timestamp_jst_file(instant) == "2023-11-10T12;30;00.123"


def test_parse_timestamp_jst_file():
    instant = parse_timestamp_jst_file("2023-11-10T12;30;00.123")
    assert instant == datetime(2023, 11, 10, 3, 30, 0, 123000, tzinfo=timezone.utc)
