"""
Data models for DVRKit.

Defines the core data structures used throughout the package.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from .config import (
    BASE_URL_TEMPLATE,
    DEFAULT_HIGH_WATER_MARK,
    DEFAULT_PLAYLIST_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SEGMENT_TIMEOUT,
    STREAM_POSITIONS,
)


class Sentinel(Enum):
    """Named bound of a time window, resolved later against real data."""
    PREV = "PREV"          # end of the newest archived file of a position
    EARLIEST = "EARLIEST"  # start of the first segment in the playlist
    LATEST = "LATEST"      # end of the last segment in the playlist


Bound = Union[datetime, Sentinel]


@dataclass(frozen=True)
class Segment:
    """One media segment referenced by a DVR playlist."""
    start_time: datetime
    duration: timedelta
    path: str

    @property
    def end_time(self) -> datetime:
        return self.start_time + self.duration

    @property
    def duration_ms(self) -> float:
        return self.duration / timedelta(milliseconds=1)


@dataclass(frozen=True)
class TimeWindow:
    """
    Time window requested on the command line.

    ``start``/``end`` hold either a concrete instant or a sentinel. When a bound
    can only be known once the playlist has been read, ``duration`` carries the
    length forward and the missing bound is ``None``.
    """
    start: Optional[Bound]
    end: Optional[Bound]
    duration: Optional[timedelta] = None

    @property
    def needs_previous_files(self) -> bool:
        return self.start is Sentinel.PREV


@dataclass(frozen=True)
class Selection:
    """Index range of segments matching a resolved window."""
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    start_index: int
    end_index: int  # exclusive

    @property
    def is_empty(self) -> bool:
        return self.start_index >= self.end_index

    def __len__(self) -> int:
        return max(0, self.end_index - self.start_index)


@dataclass
class PositionState:
    """Mutable per-position download state, owned by one archiving task."""
    position: str
    start_at: datetime
    end_at: datetime
    cursor: int
    end_index: int
    partial_path: str
    last_written: Optional[Segment] = None
    bytes_written: int = 0

    @property
    def finished(self) -> bool:
        return self.cursor >= self.end_index


@dataclass(frozen=True)
class StreamPosition:
    """A monitored camera position and the access hash of its stream."""
    code: str
    access_hash: str

    @property
    def base_url(self) -> str:
        return BASE_URL_TEMPLATE.format(hash=self.access_hash)


def default_positions() -> List[StreamPosition]:
    return [StreamPosition(code, access_hash) for code, access_hash in STREAM_POSITIONS]


@dataclass
class ArchiveConfig:
    """Configuration for an archive run."""
    output_dir: str
    positions: List[StreamPosition] = field(default_factory=default_positions)
    retry_delay: float = DEFAULT_RETRY_DELAY
    playlist_timeout: int = DEFAULT_PLAYLIST_TIMEOUT
    segment_timeout: int = DEFAULT_SEGMENT_TIMEOUT
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK
