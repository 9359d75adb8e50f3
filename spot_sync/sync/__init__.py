"""
Sync module for spot-sync.

This module turns a list of TrackRecords into a synchronized folder:
    - session: Run-wide state (tracks, failed list, counters)
    - orchestrator: Per-track state machine and worker pool
    - cleanup: Signal handling and temporary file removal

Usage:
    from spot_sync.sync import (
        InterruptHandler,
        SyncSession,
        build_orchestrator,
        log_report,
    )

    session = SyncSession(records, options)
    handler = InterruptHandler(session)
    handler.install()
    try:
        log_report(build_orchestrator(session, config).run())
    finally:
        handler.uninstall()
"""

from spot_sync.sync.cleanup import InterruptHandler, remove_temp_files
from spot_sync.sync.orchestrator import (
    SyncOrchestrator,
    SyncReport,
    build_orchestrator,
    log_report,
)
from spot_sync.sync.session import FailedTrack, SyncSession

__all__ = [
    "FailedTrack",
    "InterruptHandler",
    "SyncOrchestrator",
    "SyncReport",
    "SyncSession",
    "build_orchestrator",
    "log_report",
    "remove_temp_files",
]
