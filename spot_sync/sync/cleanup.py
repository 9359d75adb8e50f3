"""
Interrupt handling and temporary file cleanup for spot-sync.

When the user presses Ctrl+C (or the process receives SIGTERM), local
files that a worker had moved aside for a metadata refresh get their
final name back, and every other temporary artifact a record may have
left behind is removed. Then the process exits with code 130.

Cleanup is best-effort: a rename in flight on a worker thread may race
with it. Only tracks held by a worker can be affected, and the next run
overwrites whatever they left.

Usage:
    from spot_sync.sync.cleanup import InterruptHandler

    handler = InterruptHandler(session)
    handler.install()
    try:
        orchestrator.run()
    finally:
        handler.uninstall()
"""

import os
import signal
from typing import Any, Iterable

from spot_sync.core.logger import get_logger
from spot_sync.spotify.models import TrackRecord
from spot_sync.sync.session import SyncSession

logger = get_logger(__name__)


INTERRUPT_EXIT_CODE = 130


def remove_temp_files(records: Iterable[TrackRecord]) -> list[str]:
    """
    Delete every temporary artifact of the given records that exists.

    Args:
        records: Records to clean up, typically session.snapshot().

    Returns:
        Paths that were removed. Files that vanish or cannot be removed
        are skipped silently.
    """
    removed: list[str] = []
    for record in records:
        for path in record.existing_temp_files():
            try:
                os.remove(path)
            except OSError:
                continue
            removed.append(path)
    return removed


def restore_local_files(records: Iterable[TrackRecord]) -> list[str]:
    """
    Give moved-aside local files their final name back.

    A record that was local at startup, whose final file is gone while its
    temporary file exists, was renamed by a metadata-refresh worker. That
    temporary file is the user's own track, not a download.

    Returns:
        Final names that were restored.
    """
    restored: list[str] = []
    for record in records:
        if not record.is_local or os.path.exists(record.filename_final):
            continue
        try:
            os.replace(record.filename_temporary, record.filename_final)
        except OSError:
            continue
        restored.append(record.filename_final)
    return restored


def _handled_signals() -> list[signal.Signals]:
    signals = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signals.append(signal.SIGTERM)
    return signals


class InterruptHandler:
    """
    Process-wide signal handler bound to one session.

    Attributes:
        _session: Session whose records are cleaned up.
        _previous: Handlers that were registered before install().
    """

    def __init__(self, session: SyncSession) -> None:
        self._session = session
        self._previous: dict[signal.Signals, Any] = {}

    def install(self) -> None:
        """Register the handler for SIGINT (and SIGTERM where it exists)."""
        for signum in _handled_signals():
            self._previous[signum] = signal.signal(signum, self.handle)

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for signum, previous in self._previous.items():
            # None means the previous handler was not set from Python
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    def handle(self, signum: int, frame: Any) -> None:
        """
        Clean up and exit.

        Raises:
            SystemExit: Always, with code 130.
        """
        logger.warning("Signal captured: cleaning up temporary files.")
        records = self._session.snapshot()
        restored = restore_local_files(records)
        removed = remove_temp_files(records)
        logger.debug(f"Restored {len(restored)} local files, removed {len(removed)} temporary files")
        logger.warning("Explicit closure request by the user. Exiting.")
        raise SystemExit(INTERRUPT_EXIT_CODE)
