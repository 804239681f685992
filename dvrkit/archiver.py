"""
Stream archiver for DVRKit.

Downloads the segments of every monitored position concurrently. Each position
runs in its own asyncio task: fetch the playlist, select the requested range,
then download segments strictly in order into a provisional ``PARTIAL_`` file
which is renamed once writing ends. The final name encodes the covered range
and is what a later ``PREV`` run reads back.
"""

import asyncio
import functools
import logging
import os
import re
import signal
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import aiohttp

from .config import DEFAULT_HIGH_WATER_MARK, DEFAULT_RETRY_DELAY, OUTPUT_EXTENSION, PARTIAL_PREFIX
from .exceptions import NoPriorFileError, SegmentFetchError
from .hls import fetch_playlist, segment_url
from .models import ArchiveConfig, PositionState, Segment, Selection, StreamPosition, TimeWindow
from .selector import select_range
from .timerange import parse_time_range
from .utils import format_timestamp_jst, format_timestamp_jst_file, parse_timestamp_jst_file

logger = logging.getLogger(__name__)

_FILE_END_RE = re.compile(r'(?<=--)\d{4}-.*?(?=_)')

PlaylistFetcher = Callable[[str], List[Segment]]


class ArchiveState(Enum):
    FETCHING_PLAYLIST = "fetching_playlist"
    SELECTING = "selecting"
    EMPTY = "empty"
    WRITING = "writing"
    CANCELLING = "cancelling"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


def partial_filename(start: datetime, position: str) -> str:
    return f"{PARTIAL_PREFIX}{format_timestamp_jst_file(start)}_{position}{OUTPUT_EXTENSION}"


def final_filename(start: datetime, end: datetime, position: str) -> str:
    return f"{format_timestamp_jst_file(start)}--{format_timestamp_jst_file(end)}_{position}{OUTPUT_EXTENSION}"


def find_previous_end(output_dir: str, position: str) -> datetime:
    """
    Find where the newest archived file of a position ends.

    Only finalized files (``<start>--<end>_<position>.mts``) are considered.
    The lexicographically last name is the newest one because names start with
    a fixed-width timestamp.

    Args:
        output_dir: Directory holding previous archive files
        position: Position code

    Returns:
        End instant encoded in the newest file name

    Raises:
        NoPriorFileError: If no archived file exists for the position
    """
    suffix = f"_{position}{OUTPUT_EXTENSION}"
    try:
        filenames = os.listdir(output_dir)
    except FileNotFoundError:
        raise NoPriorFileError(position, output_dir)

    candidates = sorted(f for f in filenames if f.endswith(suffix) and _FILE_END_RE.search(f))
    if not candidates:
        raise NoPriorFileError(position, output_dir)

    latest = candidates[-1]
    end = parse_timestamp_jst_file(_FILE_END_RE.search(latest).group(0))
    logger.debug(f"Previous file for {position}: {latest} (ends {format_timestamp_jst(end)})")
    return end


def find_previous_ends(output_dir: str, positions: Iterable[str]) -> Dict[str, datetime]:
    return {position: find_previous_end(output_dir, position) for position in positions}


class SegmentWriter:
    """
    Binary file sink that reports its own readiness for more data.

    ``write()`` starts the disk write right away on the writer's own worker
    thread, so completed segments reach the file in order without waiting for
    the caller. It returns False while the bytes not yet on disk are at or
    above the high-water mark; the caller must then await ``drain()``, which
    waits for the outstanding writes, before producing more data.
    """

    def __init__(self, path: str, high_water_mark: int = DEFAULT_HIGH_WATER_MARK):
        self.path = path
        self.high_water_mark = high_water_mark
        self.closed = False
        self._file = open(path, 'wb')
        # One worker keeps writes in submission order
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dvrkit-writer")
        self._pending: List[asyncio.Future] = []
        self._pending_bytes = 0

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    def write(self, data: bytes) -> bool:
        if self.closed:
            raise ValueError(f"Write to closed writer: {self.path}")
        loop = asyncio.get_running_loop()
        size = len(data)
        self._pending_bytes += size
        future = loop.run_in_executor(self._executor, self._write_chunk, data)
        future.add_done_callback(lambda _: self._written(size))
        self._pending.append(future)
        return self._pending_bytes < self.high_water_mark

    def _written(self, size: int) -> None:
        self._pending_bytes -= size

    def _write_chunk(self, data: bytes) -> None:
        self._file.write(data)
        self._file.flush()

    async def drain(self) -> None:
        if not self._pending:
            return
        pending, self._pending = self._pending, []
        await asyncio.gather(*pending)

    async def close(self) -> None:
        if self.closed:
            return
        try:
            await self.drain()
        finally:
            self._executor.shutdown(wait=True)
            self._file.close()
            self.closed = True


class StreamArchiver:
    """
    Archives the requested window of one camera position.

    Segments are fetched one at a time in playlist order. A failed segment is
    retried after a fixed delay until it succeeds or the halt event is set.
    """

    def __init__(
        self,
        position: StreamPosition,
        window: TimeWindow,
        output_dir: str,
        session: aiohttp.ClientSession,
        halt: asyncio.Event,
        prev_end: Optional[datetime] = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        playlist_fetcher: Optional[PlaylistFetcher] = None,
    ):
        """
        Initialize archiver.

        Args:
            position: Camera position to archive
            window: Requested time window, shared by all positions
            output_dir: Directory for the output file
            session: HTTP session used for segment downloads
            halt: Event set once when the run should stop
            prev_end: End of the newest archived file (required for PREV windows)
            retry_delay: Seconds to wait between attempts of a failed segment
            high_water_mark: Unwritten bytes at which to wait for the disk
            playlist_fetcher: Blocking callable returning the segments of a base URL
        """
        self.position = position
        self.window = window
        self.output_dir = output_dir
        self.session = session
        self.halt = halt
        self.prev_end = prev_end
        self.retry_delay = retry_delay
        self.high_water_mark = high_water_mark
        self.playlist_fetcher = playlist_fetcher or fetch_playlist
        self.state = ArchiveState.FETCHING_PLAYLIST
        self.position_state: Optional[PositionState] = None

    @property
    def code(self) -> str:
        return self.position.code

    async def run(self) -> Optional[str]:
        """
        Archive this position.

        Returns:
            Path of the finalized file, or None if there was nothing to write

        Raises:
            SegmentFetchError: If the playlist cannot be downloaded
        """
        self.state = ArchiveState.FETCHING_PLAYLIST
        try:
            segments = await self._load_playlist()
        except SegmentFetchError:
            self.state = ArchiveState.FAILED
            raise

        self.state = ArchiveState.SELECTING
        selection = select_range(self.window, segments, self.prev_end)
        if selection.is_empty:
            self._log_nothing_to_download(selection, segments)
            self.state = ArchiveState.EMPTY
            return None

        self._log_start(selection, segments)
        first = segments[selection.start_index]
        state = PositionState(
            position=self.code,
            start_at=selection.start_at,
            end_at=selection.end_at,
            cursor=selection.start_index,
            end_index=selection.end_index,
            partial_path=os.path.join(self.output_dir, partial_filename(first.start_time, self.code)),
        )
        self.position_state = state

        self.state = ArchiveState.WRITING
        writer = SegmentWriter(state.partial_path, self.high_water_mark)
        try:
            await self._write_segments(state, segments, writer)
        finally:
            await writer.close()

        self.state = ArchiveState.FINALIZING
        path = self._finalize(state, first)
        self.state = ArchiveState.DONE
        return path

    async def _load_playlist(self) -> List[Segment]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.playlist_fetcher, self.position.base_url)
        )

    async def _write_segments(self, state: PositionState, segments: List[Segment], writer: SegmentWriter) -> None:
        while not state.finished:
            if self.halt.is_set():
                self.state = ArchiveState.CANCELLING
                logger.info(f"[{self.code}] halt requested, stopping at segment {state.cursor}")
                return

            segment = segments[state.cursor]
            data = await self._fetch_segment(segment)
            if data is None:
                self.state = ArchiveState.CANCELLING
                return

            logger.info(f"{self.code} {format_timestamp_jst(segment.start_time)} {segment.path}")
            ready = writer.write(data)
            state.last_written = segment
            state.bytes_written += len(data)
            if not ready:
                await writer.drain()
            state.cursor += 1

    async def _fetch_segment(self, segment: Segment) -> Optional[bytes]:
        """Download a segment, retrying until success. Returns None if halted while retrying."""
        url = segment_url(self.position.base_url, segment.path)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._download(url)
            except SegmentFetchError as e:
                logger.error(f"[{self.code}] {e} (attempt {attempt}), retrying in {self.retry_delay}s")

            await asyncio.sleep(self.retry_delay)
            if self.halt.is_set():
                logger.info(f"[{self.code}] halt requested while retrying {segment.path}")
                return None

    async def _download(self, url: str) -> bytes:
        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SegmentFetchError(url, str(e) or type(e).__name__) from e

    def _finalize(self, state: PositionState, first: Segment) -> Optional[str]:
        if state.last_written is None:
            logger.info(f"[END]  pos: {self.code}  nothing was written")
            os.remove(state.partial_path)
            return None

        end = state.last_written.end_time
        logger.info(
            f"[END]  pos: {self.code}  end of this file: {format_timestamp_jst(end)}  "
            f"bytes written: {state.bytes_written}"
        )

        final_path = os.path.join(self.output_dir, final_filename(first.start_time, end, self.code))
        if os.path.exists(final_path):
            logger.warning(f"{final_path} already exists, keeping it and discarding {state.partial_path}")
            os.remove(state.partial_path)
            return final_path

        os.rename(state.partial_path, final_path)
        return final_path

    def _log_nothing_to_download(self, selection: Selection, segments: List[Segment]) -> None:
        requested = format_timestamp_jst(selection.start_at) if selection.start_at else "(unresolved)"
        latest = format_timestamp_jst(segments[-1].end_time) if segments else "(no segments)"
        logger.info(
            f"Nothing to download.  pos: {self.code}  requested start: {requested}  "
            f"latest segment available until: {latest}"
        )

    def _log_start(self, selection: Selection, segments: List[Segment]) -> None:
        first = segments[selection.start_index]
        last = segments[selection.end_index - 1]
        lines = [
            f"[START] pos: {self.code}",
            f"    earliest segment available: {format_timestamp_jst(segments[0].start_time)}",
        ]
        if self.window.needs_previous_files:
            lines.append(f"    end of previous file:       {format_timestamp_jst(selection.start_at)}")
        lines.append(f"    start of this file:         {format_timestamp_jst(first.start_time)}")
        lines.append(f"    end of this file:           {format_timestamp_jst(last.end_time)}")
        logger.info("\n".join(lines))

        if self.window.needs_previous_files:
            if selection.start_at == first.start_time:
                logger.info(f"[{self.code}] no gap")
            else:
                logger.warning(f"[{self.code}] there's a gap between this and the previous file!")


async def archive_all(
    config: ArchiveConfig,
    window: TimeWindow,
    halt: asyncio.Event,
    session: Optional[aiohttp.ClientSession] = None,
    playlist_fetcher: Optional[PlaylistFetcher] = None,
) -> Dict[str, Optional[str]]:
    """
    Archive every configured position concurrently.

    PREV lookups happen before any network activity, so a missing previous
    file aborts the whole run.

    Args:
        config: Archive configuration
        window: Requested time window
        halt: Event that stops all positions once set
        session: Optional HTTP session (default: a new one per run)
        playlist_fetcher: Optional blocking playlist fetcher

    Returns:
        Mapping of position code to finalized file path (None if nothing was written
        or the playlist could not be fetched)

    Raises:
        NoPriorFileError: If PREV was requested and a position has no archived file
    """
    prev_ends: Dict[str, datetime] = {}
    if window.needs_previous_files:
        prev_ends = find_previous_ends(config.output_dir, [p.code for p in config.positions])

    os.makedirs(config.output_dir, exist_ok=True)

    if playlist_fetcher is None:
        playlist_fetcher = functools.partial(fetch_playlist, timeout=config.playlist_timeout)

    if session is None:
        timeout = aiohttp.ClientTimeout(total=config.segment_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as owned_session:
            return await _archive_positions(config, window, halt, owned_session, prev_ends, playlist_fetcher)
    return await _archive_positions(config, window, halt, session, prev_ends, playlist_fetcher)


async def _archive_positions(
    config: ArchiveConfig,
    window: TimeWindow,
    halt: asyncio.Event,
    session: aiohttp.ClientSession,
    prev_ends: Dict[str, datetime],
    playlist_fetcher: PlaylistFetcher,
) -> Dict[str, Optional[str]]:
    archivers = [
        StreamArchiver(
            position=position,
            window=window,
            output_dir=config.output_dir,
            session=session,
            halt=halt,
            prev_end=prev_ends.get(position.code),
            retry_delay=config.retry_delay,
            high_water_mark=config.high_water_mark,
            playlist_fetcher=playlist_fetcher,
        )
        for position in config.positions
    ]

    outcomes = await asyncio.gather(*(archiver.run() for archiver in archivers), return_exceptions=True)

    results: Dict[str, Optional[str]] = {}
    for archiver, outcome in zip(archivers, outcomes):
        if isinstance(outcome, SegmentFetchError):
            logger.error(f"[{archiver.code}] failed: {outcome}")
            results[archiver.code] = None
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[archiver.code] = outcome
    return results


def _install_interrupt_handler(loop: asyncio.AbstractEventLoop, halt: asyncio.Event) -> None:
    # First interrupt sets the halt event, a second one gets the default behaviour
    def on_interrupt():
        logger.info("stopping")
        halt.set()
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            signal.signal(signal.SIGINT, signal.default_int_handler)

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except NotImplementedError:
        # Windows event loops do not support add_signal_handler
        signal.signal(signal.SIGINT, lambda signum, frame: loop.call_soon_threadsafe(on_interrupt))


async def run_archive(config: ArchiveConfig, window: TimeWindow) -> Dict[str, Optional[str]]:
    """Archive all positions, stopping gracefully on the first SIGINT."""
    halt = asyncio.Event()
    _install_interrupt_handler(asyncio.get_running_loop(), halt)
    return await archive_all(config, window, halt)


def archive_from_config(config: ArchiveConfig, time_range: str) -> Dict[str, Optional[str]]:
    """
    Archive a time range using an ArchiveConfig object.

    Args:
        config: ArchiveConfig with output directory and positions
        time_range: Range expression, see :func:`dvrkit.timerange.parse_time_range`

    Returns:
        Mapping of position code to finalized file path
    """
    window = parse_time_range(time_range)
    return asyncio.run(run_archive(config, window))
