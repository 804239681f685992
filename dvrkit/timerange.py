"""
Time range resolution for DVRKit.

Turns a compact range expression such as ``2023-11-10T12:30:00/10m`` or
``PREV/LATEST`` into a :class:`TimeWindow`. The grammar is a short ordered list
of alternatives; the first one that accepts every token wins, so ambiguous
inputs resolve to whichever alternative is listed first.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .exceptions import MalformedRangeError
from .models import Bound, Sentinel, TimeWindow
from .utils import match_duration, match_timestamp

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r'\s*(?:/|--)\s*')

START_KEYWORDS = {Sentinel.PREV.value: Sentinel.PREV, Sentinel.EARLIEST.value: Sentinel.EARLIEST}
END_KEYWORDS = {Sentinel.LATEST.value: Sentinel.LATEST}


def _start_or_keyword(token: str) -> Optional[Bound]:
    if token in START_KEYWORDS:
        return START_KEYWORDS[token]
    return match_timestamp(token)


def _end_or_keyword(token: str) -> Optional[Bound]:
    if token in END_KEYWORDS:
        return END_KEYWORDS[token]
    return match_timestamp(token)


def _single_start(tokens: List[str], now: datetime) -> Optional[TimeWindow]:
    """``<start>``: from the given instant until the end of the playlist."""
    start = _start_or_keyword(tokens[0])
    if start is None:
        return None
    return TimeWindow(start=start, end=Sentinel.LATEST)


def _single_duration(tokens: List[str], now: datetime) -> Optional[TimeWindow]:
    """``<duration>``: the trailing window of that length ending now."""
    duration = match_duration(tokens[0])
    if duration is None:
        return None
    return TimeWindow(start=now - duration, end=now)


def _start_end(tokens: List[str], now: datetime) -> Optional[TimeWindow]:
    """``<start>/<end>``"""
    start = _start_or_keyword(tokens[0])
    end = _end_or_keyword(tokens[1])
    if start is None or end is None:
        return None
    return TimeWindow(start=start, end=end)


def _start_duration(tokens: List[str], now: datetime) -> Optional[TimeWindow]:
    """``<start>/<duration>``"""
    start = _start_or_keyword(tokens[0])
    duration = match_duration(tokens[1])
    if start is None or duration is None:
        return None
    if isinstance(start, Sentinel):
        return TimeWindow(start=start, end=None, duration=duration)
    return TimeWindow(start=start, end=start + duration)


def _duration_end(tokens: List[str], now: datetime) -> Optional[TimeWindow]:
    """``<duration>/<end>``"""
    duration = match_duration(tokens[0])
    end = _end_or_keyword(tokens[1])
    if duration is None or end is None:
        return None
    if isinstance(end, Sentinel):
        return TimeWindow(start=None, end=end, duration=duration)
    return TimeWindow(start=end - duration, end=end)


Alternative = Callable[[List[str], datetime], Optional[TimeWindow]]

# Tried in order; keyed by token count
ALTERNATIVES: Dict[int, List[Alternative]] = {
    1: [_single_start, _single_duration],
    2: [_start_end, _start_duration, _duration_end],
}


def split_time_range(text: str) -> List[str]:
    """Upper-case a range expression and split it on ``/`` or ``--``."""
    return _SEPARATOR_RE.split(text.strip().upper())


def parse_time_range(text: str, now: Optional[datetime] = None) -> TimeWindow:
    """
    Parse a time range expression.

    Args:
        text: Range expression, e.g. ``1h/2023-11-10T12:30:00`` or ``PREV``
        now: Reference instant for trailing windows (default: current time)

    Returns:
        TimeWindow describing the requested range

    Raises:
        MalformedRangeError: If no grammar alternative accepts the input

    Example:
        >>> window = parse_time_range("2023-11-10T12:30:00/10m")
        >>> window.end - window.start
        datetime.timedelta(seconds=600)
    """
    if now is None:
        now = datetime.now(timezone.utc)

    tokens = split_time_range(text)
    for alternative in ALTERNATIVES.get(len(tokens), []):
        window = alternative(tokens, now)
        if window is not None:
            logger.debug(f"Range {text!r} parsed by {alternative.__name__}: {window}")
            return window

    raise MalformedRangeError(f"Malformed time range: {text}")
