"""
yt-dlp fetcher for spot-sync.

The fetch half of the candidate source. Downloader.fetch() pulls the best
audio stream of an accepted Candidate and has FFmpeg convert it to the
configured container:

    downloader = Downloader(extension=".mp3")
    path = downloader.fetch(candidate, record.temp_base_name)

The orchestrator passes the track's hidden temporary name as output base,
so the converted file is ".artist-title.mp3" until it is committed.

Failures are classified from yt-dlp's message (classify_error) and each
class has its own retry policy: 403s and network errors are retried with
backoff, a rate limit gets one long pause, removed videos are not retried.

Requires FFmpeg on PATH for the conversion.
"""

import glob
import os
import random
import time
from enum import Enum, auto
from pathlib import Path
from typing import Any, Callable

from yt_dlp import YoutubeDL

from spot_sync.core.exceptions import DownloadError
from spot_sync.core.logger import get_logger
from spot_sync.youtube.models import Candidate

logger = get_logger(__name__)


MAX_RETRIES = 3
BASE_DELAY = 1.5  # seconds
MAX_DELAY = 15.0  # seconds
JITTER_FACTOR = 0.3
RATE_LIMIT_PAUSE = 30.0  # seconds

# yt-dlp leftovers of an interrupted download
PARTIAL_SUFFIXES = (".part", ".ytdl")


class YtDlpSilentLogger:
    """
    Logger object handed to yt-dlp.

    yt-dlp prints some errors to stderr even with quiet=True. Routing them
    here keeps the console clean and lets fetch() attach the last error
    to the exception it classifies.
    """

    def __init__(self) -> None:
        self.last_error: str | None = None

    def debug(self, msg: str) -> None:
        pass

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        logger.debug(f"yt-dlp warning: {msg}")

    def error(self, msg: str) -> None:
        self.last_error = msg
        logger.debug(f"yt-dlp error: {msg}")


class ErrorType(Enum):
    FORBIDDEN = auto()
    RATE_LIMITED = auto()
    FORMAT_UNAVAILABLE = auto()
    AGE_RESTRICTED = auto()
    NETWORK_ERROR = auto()
    VIDEO_UNAVAILABLE = auto()
    FFMPEG_MISSING = auto()
    UNKNOWN = auto()


def _contains(*markers: str) -> Callable[[str], bool]:
    return lambda msg: any(m in msg for m in markers)


# Checked in order, first match wins. Rate limiting leads because YouTube
# words it as "Video unavailable ... try again later".
_CLASSIFIERS: list[tuple[ErrorType, Callable[[str], bool]]] = [
    (ErrorType.RATE_LIMITED,
     _contains("rate-limited", "rate limit", "429", "too many requests", "try again later")),
    (ErrorType.FORBIDDEN, _contains("403", "forbidden", "did not get any data")),
    (ErrorType.FFMPEG_MISSING,
     lambda msg: "ffmpeg" in msg and ("not found" in msg or "not installed" in msg)),
    (ErrorType.FORMAT_UNAVAILABLE,
     lambda msg: "format" in msg and ("not available" in msg or "unavailable" in msg)),
    (ErrorType.AGE_RESTRICTED, _contains("sign in", "confirm your age", "age-restricted")),
    (ErrorType.NETWORK_ERROR,
     _contains("connection", "timeout", "timed out", "network", "urlopen error")),
    (ErrorType.VIDEO_UNAVAILABLE,
     _contains("video unavailable", "private video", "removed", "deleted")),
]


def classify_error(error_message: str) -> ErrorType:
    """
    Map a yt-dlp error message to an ErrorType.

    Args:
        error_message: Exception text, possibly joined with the last line
                       yt-dlp logged.
    """
    msg = error_message.lower()
    for error_type, matches in _CLASSIFIERS:
        if matches(msg):
            return error_type
    return ErrorType.UNKNOWN


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """base_delay * 2**attempt, capped at MAX_DELAY, ±30% jitter, 0.5s floor."""
    delay = min(base_delay * (2 ** attempt), MAX_DELAY)
    jitter = delay * JITTER_FACTOR * (2 * random.random() - 1)
    return max(0.5, delay + jitter)


class Downloader:
    """
    Fetches candidates with yt-dlp.

    Attributes:
        _extension: Target container, dot included.
        _cookie_file: cookies.txt passed to yt-dlp, or None.
        _sleep: Wait function between attempts (replaced in tests).
    """

    def __init__(
        self,
        extension: str = ".mp3",
        cookie_file: Path | None = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._extension = extension
        self._cookie_file = cookie_file
        self._sleep = sleep

    @property
    def codec(self) -> str:
        return self._extension.lstrip(".")

    def fetch(self, candidate: Candidate, output_base: str) -> Path:
        """
        Download and convert a candidate to output_base + extension.

        Args:
            candidate: The accepted search result.
            output_base: Output path without extension, relative to the
                         working directory.

        Returns:
            Path of the converted file.

        Raises:
            DownloadError: The error class allows no (more) retries, or
                           the converted file is missing or empty. Partial
                           downloads are removed first.
        """
        # "%" starts a yt-dlp template field
        template = output_base.replace("%", "%%") + ".%(ext)s"
        expected = Path(output_base + self._extension)

        for attempt in range(MAX_RETRIES):
            yt_logger = YtDlpSilentLogger()
            try:
                with YoutubeDL(self._get_yt_dlp_options(template, yt_logger)) as ydl:
                    info = ydl.extract_info(candidate.locator, download=True)

                if info is None:
                    raise DownloadError("yt-dlp returned no info")
                if not expected.exists() or expected.stat().st_size == 0:
                    raise DownloadError(f"Converted file is missing or empty: {expected}")

                logger.debug(f"Fetched {candidate.locator} -> {expected}")
                return expected

            except Exception as e:
                message = str(e)
                if yt_logger.last_error and yt_logger.last_error not in message:
                    message = f"{message} | {yt_logger.last_error}"

                error_type = classify_error(message)
                retry, delay = self._get_retry_strategy(error_type, attempt)
                self._cleanup_partial_downloads(output_base)

                if not retry or attempt == MAX_RETRIES - 1:
                    raise DownloadError(
                        f"yt-dlp error: {message}",
                        details={"url": candidate.locator, "error_type": error_type.name},
                        is_retryable=retry
                    ) from e

                logger.debug(
                    f"Fetch attempt {attempt + 1}/{MAX_RETRIES} failed "
                    f"({error_type.name}), retrying in {delay:.1f}s"
                )
                self._sleep(delay)

        raise DownloadError("yt-dlp retries exhausted", details={"url": candidate.locator})

    def _get_retry_strategy(self, error_type: ErrorType, attempt: int) -> tuple[bool, float]:
        """
        Whether to try again after a failure, and how long to wait.

        Returns:
            (retry, delay_seconds)
        """
        if error_type in (ErrorType.VIDEO_UNAVAILABLE, ErrorType.FFMPEG_MISSING):
            return (False, 0)

        if error_type == ErrorType.FORBIDDEN:
            return (True, 1.5 + random.random())

        if error_type == ErrorType.FORMAT_UNAVAILABLE:
            return (True, 1.0 + random.random())

        if error_type == ErrorType.NETWORK_ERROR:
            return (True, calculate_backoff(attempt))

        if error_type == ErrorType.RATE_LIMITED:
            # Usually lasts far longer than a run; one pause in case it doesn't
            if attempt == 0:
                logger.warning(f"YouTube is rate limiting, retrying once in {RATE_LIMIT_PAUSE:.0f}s")
                return (True, RATE_LIMIT_PAUSE)
            return (False, 0)

        if error_type == ErrorType.AGE_RESTRICTED:
            if self._cookie_file is not None and attempt == 0:
                logger.warning("Age-restricted video refused with cookies; they may be expired")
                return (True, 1.0)
            logger.warning("Age-restricted video: set sync.cookie_file in config.yaml")
            return (False, 0)

        # UNKNOWN: a single retry
        return (attempt == 0, BASE_DELAY)

    def _cleanup_partial_downloads(self, output_base: str) -> None:
        """Delete source-container leftovers (.webm.part, .part-Frag3, ...)."""
        for path in glob.glob(glob.escape(output_base) + ".*"):
            if path.endswith(PARTIAL_SUFFIXES) or ".part-Frag" in path:
                try:
                    os.remove(path)
                except OSError as e:
                    logger.debug(f"Could not remove partial download {path}: {e}")

    def _get_yt_dlp_options(self, template: str, yt_logger: YtDlpSilentLogger) -> dict[str, Any]:
        """
        Options for one yt-dlp run.

        Best audio-only stream (best overall as fallback), several player
        clients to get past per-client blocks, and FFmpegExtractAudio to
        the target codec at its best VBR setting.
        """
        options: dict[str, Any] = {
            "format": "bestaudio/best",
            "outtmpl": template,
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "noplaylist": True,
            "encoding": "UTF-8",
            "retries": 3,
            "fragment_retries": 3,
            "extractor_args": {"youtube": {"player_client": ["web", "android", "default"]}},
            "postprocessors": [{
                "key": "FFmpegExtractAudio",
                "preferredcodec": self.codec,
                "preferredquality": "0",
            }],
            "keepvideo": False,
            "logger": yt_logger,
        }
        if self._cookie_file is not None:
            options["cookiefile"] = str(self._cookie_file)
        return options
