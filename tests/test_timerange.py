from datetime import datetime, timedelta, timezone

import pytest

from dvrkit.exceptions import MalformedRangeError
from dvrkit.models import Sentinel, TimeWindow
from dvrkit.timerange import parse_time_range, split_time_range
from dvrkit.utils import parse_timestamp

NOW = datetime(2023, 11, 10, 6, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("text,duration", [
    ("1h2m3.456s", timedelta(milliseconds=3723456)),
    ("10m", timedelta(minutes=10)),
    ("30s", timedelta(seconds=30)),
])
def test_single_duration_ends_now(text, duration):
    window = parse_time_range(text, now=NOW)
    assert window.end == NOW
    assert window.end - window.start == duration
    assert window.duration is None


def test_single_duration_defaults_to_current_time():
    before = datetime.now(timezone.utc)
    window = parse_time_range("5m")
    after = datetime.now(timezone.utc)
    assert before <= window.end <= after
    assert window.end - window.start == timedelta(minutes=5)


def test_single_instant_runs_until_latest():
    window = parse_time_range("2023-11-10T12:30:00", now=NOW)
    assert window == TimeWindow(start=parse_timestamp("2023-11-10T12:30:00"), end=Sentinel.LATEST)


def test_single_keyword():
    assert parse_time_range("PREV") == TimeWindow(start=Sentinel.PREV, end=Sentinel.LATEST)
    assert parse_time_range("earliest") == TimeWindow(start=Sentinel.EARLIEST, end=Sentinel.LATEST)


def test_instant_to_instant_is_exact_regardless_of_offsets():
    window = parse_time_range("2023-11-10T12:30:00+09:00/2023-11-10T03:40:00Z")
    assert window.start == datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)
    assert window.end == datetime(2023, 11, 10, 3, 40, tzinfo=timezone.utc)
    assert window.duration is None


def test_double_dash_separator():
    window = parse_time_range("2023-11-10T12:30:00 -- 2023-11-10T12:40:00")
    assert window.end - window.start == timedelta(minutes=10)


def test_filename_style_range():
    window = parse_time_range("2023-11-10T12;30;00.000--2023-11-10T12;40;00.000")
    assert window.start == parse_timestamp("2023-11-10T12:30:00")
    assert window.end == parse_timestamp("2023-11-10T12:40:00")


def test_start_and_duration():
    window = parse_time_range("2023-11-10T12:30:00/10m")
    assert window.start == parse_timestamp("2023-11-10T12:30:00")
    assert window.end == parse_timestamp("2023-11-10T12:40:00")


def test_duration_and_end():
    window = parse_time_range("1h/2023-11-10T12:30:00")
    assert window.start == parse_timestamp("2023-11-10T11:30:00")
    assert window.end == parse_timestamp("2023-11-10T12:30:00")


def test_compact_timestamps():
    window = parse_time_range("20231110T123000/20231110T124000")
    assert window.end - window.start == timedelta(minutes=10)


def test_sentinel_start_carries_duration_forward():
    window = parse_time_range("PREV/1h")
    assert window == TimeWindow(start=Sentinel.PREV, end=None, duration=timedelta(hours=1))
    assert window.needs_previous_files


def test_sentinel_start_with_instant_end():
    window = parse_time_range("EARLIEST/2023-11-10T12:30:00")
    assert window == TimeWindow(start=Sentinel.EARLIEST, end=parse_timestamp("2023-11-10T12:30:00"))


def test_duration_before_latest_carries_duration_forward():
    window = parse_time_range("30m/LATEST")
    assert window == TimeWindow(start=None, end=Sentinel.LATEST, duration=timedelta(minutes=30))


def test_earliest_to_latest_is_case_insensitive():
    window = parse_time_range("earliest/latest")
    assert window == TimeWindow(start=Sentinel.EARLIEST, end=Sentinel.LATEST)


@pytest.mark.parametrize("text", [
    "",
    "garbage",
    "a/b/c",
    "1h/10m",
    "LATEST/1h",
    "1h/PREV",
    "2023-11-10T12:30:00/EARLIEST",
    "2023-11-10/10m",
])
def test_malformed_ranges(text):
    with pytest.raises(MalformedRangeError):
        parse_time_range(text, now=NOW)


def test_split_time_range():
    assert split_time_range(" prev / 1h ") == ["PREV", "1H"]
    assert split_time_range("1h--latest") == ["1H", "LATEST"]
