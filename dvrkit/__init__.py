"""
DVRKit - HLS DVR Window Archiver

Archives a chosen time window of live HLS streams with a DVR (rolling) window,
writing the matching segments of every monitored camera position into one
file per position.

Features:
- Compact time range expressions (instants, durations, PREV/EARLIEST/LATEST)
- DVR playlist parsing with PROGRAM-DATE-TIME timestamps
- Concurrent per-position downloads with retry and backpressure
- Crash-safe PARTIAL_ files renamed to their covered range when done

Example usage:
    >>> from dvrkit import ArchiveConfig, archive_from_config
    >>>
    >>> config = ArchiveConfig(output_dir="archive")
    >>> paths = archive_from_config(config, "2023-11-10T12:30:00/10m")
"""

import logging

__version__ = "0.1.0"
__author__ = "DVRKit Contributors"
__license__ = "MIT"

# Add NullHandler to prevent "No handler found" warnings
# Users should configure logging in their application if they want to see logs
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Timestamp utilities
from .utils import (
    match_timestamp,
    parse_timestamp,
    match_duration,
    parse_duration,
    format_timestamp_jst,
    format_timestamp_jst_file,
    parse_timestamp_jst_file,
)

# Time range resolution
from .timerange import parse_time_range, split_time_range

# Playlist handling
from .hls import fetch_playlist, parse_playlist, playlist_url, segment_url

# Segment selection
from .selector import resolve_window, select_range

# Archiving
from .archiver import (
    ArchiveState,
    SegmentWriter,
    StreamArchiver,
    archive_all,
    archive_from_config,
    find_previous_end,
    find_previous_ends,
    final_filename,
    partial_filename,
    run_archive,
)

# Data models
from .models import (
    ArchiveConfig,
    PositionState,
    Segment,
    Selection,
    Sentinel,
    StreamPosition,
    TimeWindow,
    default_positions,
)

# Errors
from .exceptions import (
    DvrKitError,
    MalformedDurationError,
    MalformedRangeError,
    MalformedTimestampError,
    NoPriorFileError,
    SegmentFetchError,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",

    # Timestamp utilities
    "match_timestamp",
    "parse_timestamp",
    "match_duration",
    "parse_duration",
    "format_timestamp_jst",
    "format_timestamp_jst_file",
    "parse_timestamp_jst_file",

    # Time ranges
    "parse_time_range",
    "split_time_range",

    # Playlists
    "fetch_playlist",
    "parse_playlist",
    "playlist_url",
    "segment_url",

    # Selection
    "resolve_window",
    "select_range",

    # Archiving
    "ArchiveState",
    "SegmentWriter",
    "StreamArchiver",
    "archive_all",
    "archive_from_config",
    "find_previous_end",
    "find_previous_ends",
    "final_filename",
    "partial_filename",
    "run_archive",

    # Models
    "ArchiveConfig",
    "PositionState",
    "Segment",
    "Selection",
    "Sentinel",
    "StreamPosition",
    "TimeWindow",
    "default_positions",

    # Errors
    "DvrKitError",
    "MalformedDurationError",
    "MalformedRangeError",
    "MalformedTimestampError",
    "NoPriorFileError",
    "SegmentFetchError",
]
