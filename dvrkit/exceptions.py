"""
Exception types for DVRKit.

Grammar errors are raised for malformed user input and abort a run before any
network activity. ``SegmentFetchError`` is transient: segment downloads log it
and retry, playlist downloads let it fail the affected position.
"""

from typing import Optional


class DvrKitError(Exception):
    """Base class for all DVRKit errors."""


class MalformedTimestampError(DvrKitError, ValueError):
    """Raised when a date/time string does not match any accepted format."""


class MalformedDurationError(DvrKitError, ValueError):
    """Raised when a duration string does not match the h/m/s grammar."""


class MalformedRangeError(DvrKitError, ValueError):
    """Raised when a time range expression matches none of the grammar alternatives."""


class NoPriorFileError(DvrKitError, FileNotFoundError):
    """Raised when PREV is requested but a position has no archived file yet."""

    def __init__(self, position: Optional[str] = None, directory: Optional[str] = None):
        self.position = position
        self.directory = directory
        if directory is None:
            message = f"No previous file end is known for the {position or 'requested'} monitor."
        else:
            message = f"There are no files in {directory} for the {position} monitor."
        super().__init__(message)


class SegmentFetchError(DvrKitError):
    """Raised when a playlist or segment could not be downloaded."""

    def __init__(self, url: str, reason: Optional[str] = None):
        self.url = url
        self.reason = reason
        message = f"Failed to fetch {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
