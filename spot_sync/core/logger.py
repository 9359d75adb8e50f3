"""
Logging setup for spot-sync.

Every module logs through the standard library: get_logger(__name__) at
import time, setup_logging() once from the CLI.

Outputs:
    console                      always; INFO, or DEBUG with --debug
    logs/log_full_<ts>.log       --log only; every record
    logs/log_errors_<ts>.log     --log only; ERROR and CRITICAL
    logs/sync_failures_<ts>.log  --log only; one entry per failed track

Console lines go through tqdm.write(), so they never tear a progress bar
that happens to be on screen.

Usage:
    from spot_sync.core.logger import get_logger, setup_logging

    setup_logging(Path.cwd(), log_to_file=True)
    logger = get_logger(__name__)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOGS_DIRNAME = "logs"
LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
SYNC_FAILURES_FILENAME = "sync_failures"

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Extra fields carried by sync failure records
FAILED_TRACK_FIELD = "sync_failed_track_name"
FAILED_STAGE_FIELD = "sync_failed_stage"
FAILED_REASON_FIELD = "sync_failed_reason"

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("urllib3", "spotipy", "requests")


class Colors:
    """ANSI escape sequences used by the console."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"


class ColoredConsoleFormatter(logging.Formatter):
    """Renders "LEVEL: message" with the level name colored by severity."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Console handler writing through tqdm.

    Attributes:
        stream: Where lines go. Resolved at emit time when None, so a
                replaced sys.stderr is honored.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class SyncFailedTrackHandler(logging.Handler):
    """
    Writes the sync_failures report.

    Only records produced by log_sync_failure() are kept; everything else
    is ignored. Each failure becomes a three-line block:

        Daft Punk - One More Time
        download: Video unavailable
        <blank line>

    Handler.handle() holds the handler lock around emit(), so entries
    from concurrent workers never interleave.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Create (or truncate) the report file."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if self.report_file is None or not hasattr(record, FAILED_TRACK_FIELD):
            return

        try:
            name = getattr(record, FAILED_TRACK_FIELD)
            stage = getattr(record, FAILED_STAGE_FIELD, "sync")
            reason = getattr(record, FAILED_REASON_FIELD, "")
            self.report_file.write(f"{name}\n{stage}: {reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Lets ERROR and CRITICAL through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _file_handler(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    return handler


def setup_logging(
    output_dir: Path,
    log_to_file: bool = False,
    debug: bool = False
) -> Path | None:
    """
    Install the root handlers for a run.

    Any handler already on the root logger is dropped first, so calling
    this twice does not duplicate output. Call it from the main thread
    before any worker starts.

    Args:
        output_dir: Folder that receives the logs/ subdirectory.
        log_to_file: Add the full, error-only and failure-report files.
        debug: Show DEBUG records on the console.

    Returns:
        The logs directory, or None when only the console is active.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = TqdmLoggingHandler()
    console.setLevel(logging.DEBUG if debug else logging.INFO)
    console.setFormatter(ColoredConsoleFormatter())
    root.addHandler(console)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not log_to_file:
        return None

    logs_dir = output_dir / LOGS_DIRNAME
    logs_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root.addHandler(_file_handler(logs_dir / f"{LOG_FULL_FILENAME}_{stamp}.log"))

    errors = _file_handler(logs_dir / f"{LOG_ERRORS_FILENAME}_{stamp}.log")
    errors.addFilter(ErrorOnlyFilter())
    root.addHandler(errors)

    failures = SyncFailedTrackHandler(logs_dir / f"{SYNC_FAILURES_FILENAME}_{stamp}.log")
    failures.open()
    root.addHandler(failures)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """Module logger; silent until setup_logging() has run."""
    return logging.getLogger(name)


def format_progress_message(index: int, total: int, name: str) -> str:
    """Per-track progress line: i/N: "name"."""
    return f"{Colors.BOLD}{index}/{total}{Colors.RESET}: \"{name}\""


def format_matched_message(name: str, url: str) -> str:
    return f"{Colors.GREEN}Matched{Colors.RESET}: {name} -> {Colors.CYAN}{url}{Colors.RESET}"


def format_no_match_message(name: str, reason: str) -> str:
    return f"{Colors.RED}No match{Colors.RESET}: {name} ({reason})"


def log_sync_failure(
    logger: logging.Logger,
    track_name: str,
    stage: str,
    error_message: str
) -> None:
    """
    Log a failed track as a warning carrying the report fields.

    Args:
        logger: Logger of the calling module.
        track_name: Display name of the track.
        stage: "search", "download" or "commit".
        error_message: Why it failed.
    """
    logger.warning(
        f"Something went wrong ({stage}) for \"{track_name}\": {error_message}.",
        extra={
            FAILED_TRACK_FIELD: track_name,
            FAILED_STAGE_FIELD: stage,
            FAILED_REASON_FIELD: error_message,
        }
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler. Used in a finally block."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root.removeHandler(handler)
