"""
Shared utility functions for DVRKit.

Timestamp and duration parsing/formatting used by the range resolver, the
playlist parser and the output file naming.
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from .config import JST
from .exceptions import MalformedDurationError, MalformedTimestampError

_TIMESTAMP_RE = re.compile(
    r'^(?:(?P<year0>\d{4})-(?P<month0>\d\d?)-(?P<day0>\d\d?)|(?P<year1>\d{4})(?P<month1>\d\d)(?P<day1>\d\d))'
    r'(?:T|\s+)'
    r'(?:(?P<hours0>\d\d?):(?P<minutes0>\d\d?):|(?P<hours1>\d\d)(?P<minutes1>\d\d))'
    r'(?P<seconds>\d\d?)(?:[.,](?P<fraction>\d+))?'
    r'(?P<offset>[+-]\d\d:?\d\d|Z)?$',
    re.IGNORECASE,
)

_DURATION_RE = re.compile(
    r'^P?T?(?:(?P<hours>\d+)H)?\s*(?:(?P<minutes>\d+)M)?\s*(?:(?P<seconds>\d+(?:[.,]\d+)?)S)?$',
    re.IGNORECASE,
)


def _parse_offset(text: str) -> tzinfo:
    if text.upper() == 'Z':
        return timezone.utc
    sign = -1 if text[0] == '-' else 1
    hours = int(text[1:3])
    minutes = int(text[-2:])
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def match_timestamp(text: str, default_tz: tzinfo = JST) -> Optional[datetime]:
    """
    Parse an ISO 8601-like timestamp, returning None if it does not match.

    Accepts ``YYYY-MM-DD`` or ``YYYYMMDD``, ``T`` or whitespace, then
    ``HH:MM:SS[.fff]`` or ``HHMMSS[.fff]`` and an optional ``Z``/``±HH:MM``
    offset. Semicolons are read as colons, so filename timestamps are accepted.

    Args:
        text: Timestamp string
        default_tz: Time zone used when no offset is given (default: JST)

    Returns:
        Timezone-aware datetime, or None

    Example:
        >>> match_timestamp("20231110 123000")
        datetime.datetime(2023, 11, 10, 12, 30, tzinfo=datetime.timezone(datetime.timedelta(seconds=32400), 'JST'))
    """
    match = _TIMESTAMP_RE.match(text.strip().replace(';', ':'))
    if match is None:
        return None

    groups = match.groupdict()
    fraction = groups['fraction'] or '0'
    microsecond = int((fraction + '000000')[:6])
    tz = _parse_offset(groups['offset']) if groups['offset'] else default_tz

    try:
        return datetime(
            int(groups['year0'] or groups['year1']),
            int(groups['month0'] or groups['month1']),
            int(groups['day0'] or groups['day1']),
            int(groups['hours0'] or groups['hours1']),
            int(groups['minutes0'] or groups['minutes1']),
            int(groups['seconds']),
            microsecond,
            tzinfo=tz,
        )
    except ValueError:
        # Out-of-range field such as month 13
        return None


def parse_timestamp(text: str, default_tz: tzinfo = JST) -> datetime:
    """
    Parse a timestamp. If the UTC offset isn't specified, it defaults to +09:00 (JST).

    Raises:
        MalformedTimestampError: If the string is not a valid timestamp

    Example:
        >>> parse_timestamp("2023-11-10T12:30:00") == parse_timestamp("2023-11-10T12:30:00+09:00")
        True
    """
    result = match_timestamp(text, default_tz)
    if result is None:
        raise MalformedTimestampError(f"Malformed date or time: {text}")
    return result


def match_duration(text: str) -> Optional[timedelta]:
    """
    Parse a compact duration such as ``1h2m3.456s``, returning None if it does not match.

    Each of the hour, minute and second components is optional but at least
    one must be present. An ISO 8601 ``PT`` prefix is tolerated.
    """
    match = _DURATION_RE.match(text.strip())
    if match is None:
        return None

    hours, minutes, seconds = match.group('hours', 'minutes', 'seconds')
    if hours is None and minutes is None and seconds is None:
        return None

    return timedelta(
        hours=int(hours or 0),
        minutes=int(minutes or 0),
        seconds=float((seconds or '0').replace(',', '.')),
    )


def parse_duration(text: str) -> timedelta:
    """
    Parse a compact duration.

    Raises:
        MalformedDurationError: If the string is not a valid duration

    Example:
        >>> parse_duration("1h2m3.456s") // timedelta(milliseconds=1)
        3723456
    """
    result = match_duration(text)
    if result is None:
        raise MalformedDurationError(f"Malformed duration: {text}")
    return result


def format_timestamp_jst(timestamp: datetime) -> str:
    """
    Format a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmm`` in JST.

    Example:
        >>> format_timestamp_jst(datetime(2023, 11, 10, 3, 30, tzinfo=timezone.utc))
        '2023-11-10T12:30:00.000'
    """
    local = timestamp.astimezone(JST)
    return f"{local:%Y-%m-%dT%H:%M:%S}.{local.microsecond // 1000:03d}"


def format_timestamp_jst_file(timestamp: datetime) -> str:
    """Format a timestamp as ``YYYY-MM-DDTHH;MM;SS.mmm`` in JST, safe for filenames."""
    return format_timestamp_jst(timestamp).replace(':', ';')


def parse_timestamp_jst_file(text: str) -> datetime:
    """Inverse of :func:`format_timestamp_jst_file`; the offset is always +09:00."""
    return parse_timestamp(text.replace(';', ':'), default_tz=JST)
