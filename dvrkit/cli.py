"""
Command line interface for DVRKit.

Usage: dvrkit <output directory> <time range>
"""

import argparse
import logging
import sys
from typing import List, Optional

from .archiver import archive_from_config
from .exceptions import MalformedRangeError, MalformedTimestampError, NoPriorFileError
from .models import ArchiveConfig

logger = logging.getLogger(__name__)

TIME_RANGE_EXAMPLES = """\
Input time in JST unless otherwise specified.

<time range> examples:
    Download from 2023-11-10 12:30:00 JST to 2023-11-10 12:40:00 JST:
        2023-11-10T12:30:00/2023-11-10T12:40:00
    Download 10 minutes starting from 2023-11-10 12:30:00 JST (same as above):
        2023-11-10T12:30:00/10m
    Download 1 hour ending at 2023-11-10 12:30:00 JST:
        1h/2023-11-10T12:30:00
    Download from 2023-11-10 12:30:00 JST until now:
        2023-11-10T12:30:00
    Download the latest 1 hour, 2 minutes and 3.456 seconds:
        1h2m3.456s
    Download from 2023-11-10 12:30:00 UTC until now:
        2023-11-10T12:30:00+00:00
    Download from 2023-11-10 12:30:00 CET (UTC+01:00) until now:
        2023-11-10T12:30:00+01:00
    Continue from the end of the previous files until now:
        PREV
    Download everything still available in the DVR window:
        EARLIEST/LATEST
    Download the last 30 minutes available in the DVR window:
        30m/LATEST
"""


class UsageParser(argparse.ArgumentParser):
    """Argument parser that prints the full help, range examples included, on usage errors."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(2, f"\n{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = UsageParser(
        prog="dvrkit",
        description="Archive a time range of the monitored DVR streams, one file per camera position.",
        epilog=TIME_RANGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("output_dir", help="Directory for the archived .mts files")
    parser.add_argument("time_range", help="Time range to download (see examples below)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def normalize_output_dir(path: str) -> str:
    """Strip trailing path separators, keeping a bare root intact."""
    stripped = path.rstrip("/\\")
    return stripped or path[:1]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = ArchiveConfig(output_dir=normalize_output_dir(args.output_dir))

    try:
        archive_from_config(config, args.time_range)
    except (MalformedRangeError, NoPriorFileError, MalformedTimestampError) as e:
        # MalformedTimestampError can only come from an unparseable previous file name here
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
