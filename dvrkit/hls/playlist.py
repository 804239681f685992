"""
DVR playlist fetching and parsing for DVRKit.

Reads the rolling-window chunklist of a stream and turns it into an ordered
list of :class:`Segment` objects with absolute start times.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import requests

from ..config import DEFAULT_PLAYLIST_TIMEOUT, EXPECTED_SEGMENT_DURATION, PLAYLIST_NAME
from ..exceptions import SegmentFetchError
from ..models import Segment
from ..utils import match_timestamp

logger = logging.getLogger(__name__)

PROGRAM_DATE_TIME_TAG = '#EXT-X-PROGRAM-DATE-TIME:'
EXTINF_TAG = '#EXTINF:'


def playlist_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/{PLAYLIST_NAME}"


def segment_url(base_url: str, path: str) -> str:
    """
    Build the absolute URL of a segment.

    Args:
        base_url: Base URL of the stream (directory of the playlist)
        path: Segment path as listed in the playlist

    Returns:
        Absolute segment URL
    """
    if path.startswith('http'):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def parse_playlist(content: str) -> List[Segment]:
    """
    Parse DVR playlist text into segments.

    A PROGRAM-DATE-TIME tag sets the start time and an EXTINF tag sets the
    duration of the next media line. When a media line has no PROGRAM-DATE-TIME
    of its own, it starts where the previous segment ended.

    Consecutive segments are expected to be exactly 6 seconds apart and 6
    seconds long. Deviations are logged as warnings and otherwise accepted.

    Args:
        content: Playlist text

    Returns:
        Segments in playlist order

    Example:
        >>> text = "#EXTM3U\\n#EXT-X-PROGRAM-DATE-TIME:2023-11-10T03:30:00.000Z\\n#EXTINF:6.0,\\nmedia_1.ts\\n"
        >>> parse_playlist(text)[0].path
        'media_1.ts'
    """
    segments: List[Segment] = []
    timestamp: Optional[datetime] = None
    duration: Optional[timedelta] = None

    for line in content.split('\n'):
        line = line.strip()
        if not line:
            continue

        if line.startswith(PROGRAM_DATE_TIME_TAG):
            value = line[len(PROGRAM_DATE_TIME_TAG):].strip()
            timestamp = match_timestamp(value, default_tz=timezone.utc)
            if timestamp is None:
                logger.warning(f"Unparseable PROGRAM-DATE-TIME: {value}")
                continue
            if segments and timestamp - segments[-1].start_time != EXPECTED_SEGMENT_DURATION:
                gap = timestamp - segments[-1].start_time
                logger.warning(
                    f"Non-fatal assertion failed: Segment timestamp difference isn't 6 seconds. "
                    f"difference={gap.total_seconds():.3f}s previous={segments[-1]} timestamp={timestamp.isoformat()}"
                )

        elif line.startswith(EXTINF_TAG):
            # Format: #EXTINF:6.000,title
            duration_str = line[len(EXTINF_TAG):].split(',')[0].strip()
            try:
                duration = timedelta(seconds=float(duration_str))
            except ValueError:
                logger.warning(f"Unparseable EXTINF duration: {duration_str}")
                duration = None

        elif line.startswith('#'):
            continue

        else:
            if timestamp is None or duration is None:
                logger.warning(f"Skipping segment without timestamp or duration: {line}")
                continue

            segment = Segment(start_time=timestamp, duration=duration, path=line)
            segments.append(segment)
            if duration != EXPECTED_SEGMENT_DURATION:
                logger.warning(f"Non-fatal assertion failed: Length of segment isn't 6 seconds. {segment}")
            timestamp = segment.end_time

    logger.debug(f"Parsed {len(segments)} segments from playlist")
    return segments


def fetch_playlist(
    base_url: str,
    timeout: int = DEFAULT_PLAYLIST_TIMEOUT,
    verify_ssl: bool = True,
) -> List[Segment]:
    """
    Download and parse the DVR playlist of a stream.

    Args:
        base_url: Base URL of the stream
        timeout: Request timeout in seconds (default: 30)
        verify_ssl: Whether to verify SSL certificates (default: True)

    Returns:
        Segments in playlist order

    Raises:
        SegmentFetchError: If the playlist cannot be downloaded
    """
    url = playlist_url(base_url)
    try:
        response = requests.get(url, timeout=timeout, verify=verify_ssl)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to download playlist {url}: {str(e)}")
        raise SegmentFetchError(url, str(e)) from e

    segments = parse_playlist(response.text)
    logger.info(f"Playlist {url}: {len(segments)} segments")
    return segments
