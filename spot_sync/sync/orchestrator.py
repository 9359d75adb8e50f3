"""
Sync orchestrator for spot-sync.

This module drives every TrackRecord of a session through its pipeline:

    Missing -> Searching -> {Found | SearchFailed}
            -> {Fetched | FetchFailed} -> PostProcessing -> Committed

with Skip reachable from Missing (already local, no override) and from
Found (simulate mode, or --replace-local finding the same video again).

Scheduling:
    Tracks are searched and fetched one at a time on the calling thread,
    in session order. Post-processing and the final rename are handed to
    a ThreadPoolExecutor, so track i is tagged and normalized while track
    i+1 is being searched. At most `workers` tracks are handed over at a
    time: the main thread waits for a free slot before submitting, so an
    interrupt never finds a backlog of queued tracks. Leaving the executor
    block is the barrier that waits for every worker. In debug mode each
    worker is awaited before the next track starts.

Commit protocol:
    Audio is always fetched under the hidden temporary name. A local file
    that only needs its tags refreshed is renamed to that name by its
    worker, right before post-processing. The worker post-processes the
    temporary file and then renames it over the final name with
    os.replace, so the folder only ever shows the old complete file or the
    new complete one. A replaced local file stays in place until that
    rename, and survives a failed fetch.

Usage:
    from spot_sync.sync.orchestrator import build_orchestrator, log_report

    report = build_orchestrator(session, config).run()
    log_report(report)
"""

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

from spot_sync.core.config import DEFAULT_WORKERS, Config
from spot_sync.core.exceptions import DownloadError, SearchError
from spot_sync.core.logger import (
    format_matched_message,
    format_no_match_message,
    format_progress_message,
    get_logger,
)
from spot_sync.download.downloader import Downloader
from spot_sync.download.metadata import read_source_locator
from spot_sync.download.postprocess import PostProcessor
from spot_sync.spotify.models import TrackRecord
from spot_sync.sync.cleanup import remove_temp_files
from spot_sync.sync.session import SyncSession
from spot_sync.youtube.matcher import select_candidate
from spot_sync.youtube.models import Candidate
from spot_sync.youtube.searcher import YouTubeSearcher, prompt_candidate

logger = get_logger(__name__)


# =============================================================================
# Collaborator interfaces
# =============================================================================

class CandidateSearcher(Protocol):
    def search(self, query: str) -> list[Candidate]: ...


class CandidateFetcher(Protocol):
    def fetch(self, candidate: Candidate, output_base: str) -> Path: ...


class TrackPostProcessor(Protocol):
    def process(self, record: TrackRecord, fresh: bool) -> None: ...


@dataclass
class SyncReport:
    """
    End-of-run summary.

    Attributes:
        total: Tracks in the session.
        committed: Tracks renamed into their final name.
        skipped: Tracks left alone.
        fetched: Tracks whose audio was downloaded.
        failed_names: Display names of failed tracks, in failure order.
    """

    total: int = 0
    committed: int = 0
    skipped: int = 0
    fetched: int = 0
    failed_names: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_names


class SyncOrchestrator:
    """
    Runs one synchronization over a session's tracks.

    Attributes:
        _session: Session holding the tracks, options and failures.
        _searcher: Candidate source, search half.
        _downloader: Candidate source, fetch half.
        _post_processor: Worker-side tagging and normalization.
        _confirm: Interactive check passed to select_candidate, or None.
        _workers: Maximum number of concurrent post-processing tasks.
        _locator_reader: Reads the YouTube URL stored in a local file.
        _slots: One permit per track handed to the executor and not yet
                finished.
    """

    def __init__(
        self,
        session: SyncSession,
        searcher: CandidateSearcher,
        downloader: CandidateFetcher,
        post_processor: TrackPostProcessor,
        confirm: Callable[[TrackRecord, Candidate], bool] | None = None,
        workers: int = DEFAULT_WORKERS,
        locator_reader: Callable[[str], str] = read_source_locator
    ) -> None:
        self._session = session
        self._searcher = searcher
        self._downloader = downloader
        self._post_processor = post_processor
        self._confirm = confirm
        self._workers = workers
        self._locator_reader = locator_reader
        self._slots = threading.BoundedSemaphore(workers)

    def run(self) -> SyncReport:
        """
        Synchronize every track of the session, in order.

        Returns:
            SyncReport built once every worker has finished. Track-scoped
            failures end up in report.failed_names; they never abort the
            run.
        """
        session = self._session
        options = session.options
        total = session.total

        if total == 0:
            return self._build_report()

        if options.replace_local:
            logger.info(f"{total} missing songs.")
        else:
            logger.info(f"{session.count_missing()} missing songs, {session.count_local()} ignored.")

        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            for index, record in enumerate(session.tracks, start=1):
                logger.info(format_progress_message(index, total, record.display_name))

                future = self._sync_track(record, executor)
                if future is not None and options.debug:
                    future.result()

        return self._build_report()

    def _sync_track(
        self,
        record: TrackRecord,
        executor: ThreadPoolExecutor
    ) -> Future | None:
        """
        Take one record from Missing up to the hand-off to a worker.

        Returns:
            The worker's future, or None if the track was skipped or failed
            before post-processing.
        """
        options = self._session.options

        if record.is_local and not (options.replace_local or options.flush_metadata):
            self._session.record_skipped(record)
            return None

        fresh = False
        if not record.is_local or options.replace_local:
            candidate = self._find_candidate(record)
            if candidate is None:
                return None

            if options.simulate:
                logger.info(
                    f"I would download \"{candidate.locator}\" for \"{record.display_name}\", "
                    f"but I'm just simulating."
                )
                self._session.record_skipped(record)
                return None

            if record.is_local and self._locator_reader(record.filename_final) == candidate.locator:
                logger.info(f"Track \"{record.display_name}\" is still the best result I can find.")
                record.source_locator = candidate.locator
                self._session.record_skipped(record)
                return None

            if not self._fetch(record, candidate):
                return None
            fresh = True

        elif options.simulate:
            logger.info(f"I would refresh metadata of \"{record.filename_final}\", but I'm just simulating.")
            self._session.record_skipped(record)
            return None

        return self._submit(executor, record, fresh)

    def _submit(self, executor: ThreadPoolExecutor, record: TrackRecord, fresh: bool) -> Future:
        """Hand a record to the executor once a worker slot is free."""
        self._slots.acquire()
        try:
            future = executor.submit(self._process_and_commit, record, fresh)
        except BaseException:
            self._slots.release()
            raise
        future.add_done_callback(lambda _: self._slots.release())
        return future

    def _find_candidate(self, record: TrackRecord) -> Candidate | None:
        """Search, filter and pick; a miss is recorded as a failure."""
        try:
            candidates = self._searcher.search(record.search_pattern)
        except SearchError as e:
            logger.debug(format_no_match_message(record.display_name, e.message))
            self._session.record_failure(record, "search", e.message)
            return None

        candidate = select_candidate(record, candidates, self._confirm)
        if candidate is None:
            reason = f"no acceptable result among {len(candidates)} candidates"
            logger.debug(format_no_match_message(record.display_name, reason))
            self._session.record_failure(record, "search", reason)
            return None

        logger.debug(format_matched_message(record.display_name, candidate.locator))
        return candidate

    def _fetch(self, record: TrackRecord, candidate: Candidate) -> bool:
        """
        Download the candidate into the record's temporary name.

        Leftovers of an interrupted earlier run are removed first. The
        final file, if any, is not touched here.
        """
        remove_temp_files([record])

        try:
            self._downloader.fetch(candidate, record.temp_base_name)
        except DownloadError as e:
            self._session.record_failure(record, "download", e.message)
            return False

        record.source_locator = candidate.locator
        record.is_local = False
        self._session.record_fetched(record)
        return True

    def _process_and_commit(self, record: TrackRecord, fresh: bool) -> None:
        """
        Worker body: post-process the temporary file, then rename it over
        the final name.

        A local file whose tags are refreshed (fresh=False) is moved to
        the temporary name here, so files of tracks still waiting for a
        worker keep their final name.

        Post-processing is best-effort, so an unexpected error there is
        logged and the commit still happens. Only a failed rename counts
        as a failure.
        """
        if not fresh:
            record.source_locator = self._locator_reader(record.filename_final)
            try:
                os.replace(record.filename_final, record.filename_temporary)
            except OSError as e:
                self._session.record_failure(record, "commit", str(e))
                return

        try:
            self._post_processor.process(record, fresh)
        except Exception as e:
            logger.error(f"Post-processing failed for \"{record.display_name}\": {e}")

        try:
            os.replace(record.filename_temporary, record.filename_final)
        except OSError as e:
            self._session.record_failure(record, "commit", str(e))
            return

        self._session.record_committed(record)

    def _build_report(self) -> SyncReport:
        session = self._session
        return SyncReport(
            total=session.total,
            committed=session.committed,
            skipped=session.skipped,
            fetched=session.fetched,
            failed_names=session.failed_names()
        )


def build_orchestrator(session: SyncSession, config: Config) -> SyncOrchestrator:
    """
    Wire the production collaborators for a session.

    Args:
        session: Session to synchronize.
        config: Loaded configuration (extension, workers, cookie file).

    Returns:
        SyncOrchestrator backed by YouTube Music, yt-dlp, mutagen and FFmpeg.
    """
    options = session.options
    return SyncOrchestrator(
        session,
        searcher=YouTubeSearcher(),
        downloader=Downloader(
            extension=config.sync.extension,
            cookie_file=config.sync.cookie_file
        ),
        post_processor=PostProcessor(options),
        confirm=prompt_candidate if options.interactive else None,
        workers=config.sync.workers
    )


def log_report(report: SyncReport) -> None:
    """Log the end-of-run summary."""
    if report.total == 0:
        logger.info("No song needs to be downloaded.")
        return

    if report.failed_names:
        logger.info(
            f"Synchronization partially completed, {len(report.failed_names)} "
            f"tracks failed to synchronize:"
        )
        for name in report.failed_names:
            logger.info(f" - \"{name}\"")
    else:
        logger.info("Synchronization completed.")
