from datetime import datetime, timedelta, timezone

import pytest

from dvrkit.exceptions import NoPriorFileError
from dvrkit.models import Segment, Sentinel, TimeWindow
from dvrkit.selector import resolve_window, select_range

T0 = datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc)
SIX = timedelta(seconds=6)


def at(ms):
    return T0 + timedelta(milliseconds=ms)


def make_segments(count=3):
    return [Segment(start_time=T0 + i * SIX, duration=SIX, path=f"seg{i}.ts") for i in range(count)]


def indices(selection):
    return selection.start_index, selection.end_index


def test_start_on_segment_boundary_excludes_previous_segment():
    selection = select_range(TimeWindow(start=at(6000), end=at(12000)), make_segments())
    assert indices(selection) == (1, 2)
    assert len(selection) == 1


def test_start_inside_segment_includes_it():
    selection = select_range(TimeWindow(start=at(5999), end=at(12000)), make_segments())
    assert indices(selection) == (0, 2)


def test_zero_length_window_is_empty():
    selection = select_range(TimeWindow(start=at(6000), end=at(6000)), make_segments())
    assert selection.is_empty
    assert len(selection) == 0


def test_end_inside_segment_includes_it():
    selection = select_range(TimeWindow(start=at(0), end=at(12001)), make_segments())
    assert indices(selection) == (0, 3)


def test_earliest_to_latest_selects_everything():
    segments = make_segments()
    selection = select_range(TimeWindow(start=Sentinel.EARLIEST, end=Sentinel.LATEST), segments)
    assert indices(selection) == (0, 3)
    assert selection.start_at == T0
    assert selection.end_at == at(18000)


def test_prev_resolves_to_previous_file_end():
    window = TimeWindow(start=Sentinel.PREV, end=Sentinel.LATEST)
    selection = select_range(window, make_segments(), prev_end=at(6000))
    assert indices(selection) == (1, 3)


def test_prev_with_duration():
    window = TimeWindow(start=Sentinel.PREV, end=None, duration=timedelta(seconds=6))
    assert resolve_window(window, make_segments(), prev_end=at(6000)) == (at(6000), at(12000))
    assert indices(select_range(window, make_segments(), prev_end=at(6000))) == (1, 2)


def test_duration_before_latest():
    window = TimeWindow(start=None, end=Sentinel.LATEST, duration=timedelta(seconds=12))
    assert resolve_window(window, make_segments()) == (at(6000), at(18000))
    assert indices(select_range(window, make_segments())) == (1, 3)


def test_prev_without_previous_end_is_an_error():
    with pytest.raises(NoPriorFileError):
        select_range(TimeWindow(start=Sentinel.PREV, end=Sentinel.LATEST), make_segments())


def test_start_after_playlist_is_empty():
    selection = select_range(TimeWindow(start=at(60000), end=Sentinel.LATEST), make_segments())
    assert selection.is_empty
    assert selection.start_at == at(60000)


def test_end_before_playlist_is_empty():
    selection = select_range(TimeWindow(start=at(-60000), end=at(-1)), make_segments())
    assert selection.is_empty


def test_empty_playlist_is_empty_selection():
    selection = select_range(TimeWindow(start=Sentinel.EARLIEST, end=Sentinel.LATEST), [])
    assert selection.is_empty
    assert selection.start_at is None


def test_end_index_matches_forward_scan():
    segments = make_segments(10)
    for start_ms in range(-3000, 66000, 1500):
        for end_ms in range(start_ms, 66000, 2500):
            selection = select_range(TimeWindow(start=at(start_ms), end=at(end_ms)), segments)
            forward = selection.start_index
            while forward < len(segments) and segments[forward].start_time < at(end_ms):
                forward += 1
            if not selection.is_empty:
                assert selection.end_index == forward
