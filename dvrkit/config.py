"""
Static configuration for DVRKit.

The monitored camera positions are fixed data, not user input. Each position
maps to its own DVR playlist on the CDN.
"""

from datetime import timedelta, timezone

# Timestamps without an explicit offset are read as Japan Standard Time
JST = timezone(timedelta(hours=9), "JST")

BASE_URL_TEMPLATE = "https://bcovlive-a.akamaihd.net/{hash}/us-east-1/6415716420001/profile_0"
PLAYLIST_NAME = "chunklist_dvr.m3u8"

# (position code, access hash)
STREAM_POSITIONS = [
    ("tl", "5b846d97b16e4e6e88256232bf75aff9"),
    ("bl", "40d91efdfb344b829e6fa37f3c9ab3b7"),
    ("ce", "45caeddc667940d28056f5e13d0e73c1"),
    ("tr", "0b10995ee1f348fb8f6829e3b208151c"),
    ("br", "548bef06d1b4423ab8b84810a28e3b9c"),
]

EXPECTED_SEGMENT_DURATION = timedelta(seconds=6)

OUTPUT_EXTENSION = ".mts"
PARTIAL_PREFIX = "PARTIAL_"

DEFAULT_RETRY_DELAY = 1.0  # seconds between segment retries
DEFAULT_PLAYLIST_TIMEOUT = 30  # seconds
DEFAULT_SEGMENT_TIMEOUT = 60  # seconds
DEFAULT_HIGH_WATER_MARK = 8 * 1024 * 1024  # unwritten bytes at which the writer asks for a drain
