"""
HLS module for DVRKit.

Provides DVR playlist download and parsing.
"""

from .playlist import (
    fetch_playlist,
    parse_playlist,
    playlist_url,
    segment_url,
)

__all__ = [
    'fetch_playlist',
    'parse_playlist',
    'playlist_url',
    'segment_url',
]
