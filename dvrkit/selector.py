"""
Segment selection for DVRKit.

Maps a :class:`TimeWindow` onto a playlist: sentinels are resolved against the
segments (or the end of the previous archive file) and the matching index range
is located.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from .exceptions import NoPriorFileError
from .models import Bound, Segment, Selection, Sentinel, TimeWindow

logger = logging.getLogger(__name__)


def _resolve_bound(
    bound: Optional[Bound],
    segments: List[Segment],
    prev_end: Optional[datetime],
) -> Optional[datetime]:
    if bound is None or isinstance(bound, datetime):
        return bound
    if bound is Sentinel.PREV:
        if prev_end is None:
            raise NoPriorFileError()
        return prev_end
    if not segments:
        return None
    if bound is Sentinel.EARLIEST:
        return segments[0].start_time
    return segments[-1].end_time


def resolve_window(
    window: TimeWindow,
    segments: List[Segment],
    prev_end: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve a window to concrete instants.

    Args:
        window: Requested window
        segments: Parsed playlist
        prev_end: End of the newest archived file of this position (for PREV)

    Returns:
        Tuple of (start_at, end_at). A bound is None only when it depends on an
        empty playlist.
    """
    start_at = _resolve_bound(window.start, segments, prev_end)
    end_at = _resolve_bound(window.end, segments, prev_end)

    if window.duration is not None:
        if start_at is None and end_at is not None:
            start_at = end_at - window.duration
        elif end_at is None and start_at is not None:
            end_at = start_at + window.duration

    return start_at, end_at


def select_range(
    window: TimeWindow,
    segments: List[Segment],
    prev_end: Optional[datetime] = None,
) -> Selection:
    """
    Find the segments covering a window.

    The first selected segment is the first one ending after the requested
    start, so a start that falls inside a segment includes it. Selection stops
    before the first segment starting at or after the requested end.

    Args:
        window: Requested window
        segments: Parsed playlist, sorted by start time
        prev_end: End of the newest archived file of this position (for PREV)

    Returns:
        Selection with the resolved instants and [start_index, end_index)
    """
    start_at, end_at = resolve_window(window, segments, prev_end)
    if not segments or start_at is None or end_at is None:
        return Selection(start_at, end_at, 0, 0)

    start_index = 0
    while start_index < len(segments) and segments[start_index].end_time <= start_at:
        start_index += 1

    end_index = len(segments) - 1
    while end_index >= start_index and segments[end_index].start_time >= end_at:
        end_index -= 1
    end_index += 1

    logger.debug(f"Selected segments [{start_index}, {end_index}) of {len(segments)}")
    return Selection(start_at, end_at, start_index, end_index)
