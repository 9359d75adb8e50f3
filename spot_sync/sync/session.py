"""
Session state for one spot-sync run.

A SyncSession is created once the TrackRecords are built and lives until
the summary is printed. It is handed explicitly to the orchestrator, the
post-processing workers and the interrupt handler; nothing else holds
run-wide state.

Shared state:
    The failed list and the counters are the only data written from more
    than one thread. Every mutation goes through self._lock, and the
    failed list is append-only.
"""

import threading
from dataclasses import dataclass
from typing import Iterable

from spot_sync.core.config import SyncOptions
from spot_sync.core.logger import get_logger, log_sync_failure
from spot_sync.spotify.models import TrackRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class FailedTrack:
    """
    One track that did not synchronize.

    Attributes:
        track: The record that failed.
        stage: Pipeline stage that failed ("search", "download", "commit").
        reason: Human-readable cause.
    """

    track: TrackRecord
    stage: str
    reason: str

    @property
    def name(self) -> str:
        return self.track.display_name


class SyncSession:
    """
    Aggregate state of one synchronization run.

    Attributes:
        tracks: Ordered, immutable tuple of records. Its order is the
                user-visible progress order.
        options: Run-time switches for this run.
        committed: Tracks renamed into their final name.
        skipped: Tracks left alone (already local, simulated, unchanged).
        fetched: Tracks whose audio was downloaded.

    Example:
        session = SyncSession(records, SyncOptions(debug=True))
        session.record_failure(record, "search", "no acceptable candidate")
        session.failed_names()   # ["Daft Punk - One More Time"]
    """

    def __init__(self, tracks: Iterable[TrackRecord], options: SyncOptions | None = None) -> None:
        self.tracks: tuple[TrackRecord, ...] = tuple(tracks)
        self.options = options if options is not None else SyncOptions()
        self._lock = threading.Lock()
        self._failed: list[FailedTrack] = []
        self._committed = 0
        self._skipped = 0
        self._fetched = 0

    @property
    def total(self) -> int:
        return len(self.tracks)

    @property
    def committed(self) -> int:
        with self._lock:
            return self._committed

    @property
    def skipped(self) -> int:
        with self._lock:
            return self._skipped

    @property
    def fetched(self) -> int:
        with self._lock:
            return self._fetched

    def record_failure(self, track: TrackRecord, stage: str, reason: str) -> None:
        """
        Append a track to the failed list and log it.

        Safe to call from any thread. The log line carries the extras the
        sync failures file handler looks for.
        """
        with self._lock:
            self._failed.append(FailedTrack(track, stage, reason))
        log_sync_failure(logger, track.display_name, stage, reason)

    def record_committed(self, track: TrackRecord) -> None:
        with self._lock:
            self._committed += 1
        logger.debug(f"Committed: {track.filename_final}")

    def record_skipped(self, track: TrackRecord) -> None:
        with self._lock:
            self._skipped += 1

    def record_fetched(self, track: TrackRecord) -> None:
        with self._lock:
            self._fetched += 1

    def failed_tracks(self) -> tuple[FailedTrack, ...]:
        """Copy of the failed list, in failure order."""
        with self._lock:
            return tuple(self._failed)

    def failed_names(self) -> list[str]:
        """Display names of the failed tracks, in failure order."""
        return [failure.name for failure in self.failed_tracks()]

    def snapshot(self) -> tuple[TrackRecord, ...]:
        """
        Read-only view of every constructed record.

        Used by the interrupt handler, which must not iterate a list that
        another thread may be changing.
        """
        return self.tracks

    def count_local(self) -> int:
        """Records whose final file already existed at construction."""
        return sum(1 for track in self.tracks if track.is_local)

    def count_missing(self) -> int:
        """Records with no local file yet."""
        return self.total - self.count_local()
