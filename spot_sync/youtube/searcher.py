"""
YouTube Music search for spot-sync.

This module is the search half of the candidate source: given a query
string it returns candidates in YouTube Music's own ranking order. The
matcher filters that list; nothing here scores or reorders it.

Search Strategy:
    1. Search with the "songs" filter (official audio first)
    2. Search with the "videos" filter
    3. Concatenate, dropping duplicate video IDs

Transient failures (rate limiting, malformed responses, connection
resets) are retried with exponential backoff and jitter.

Usage:
    from spot_sync.youtube.searcher import YouTubeSearcher

    searcher = YouTubeSearcher()
    candidates = searcher.search("daft punk one more time")
"""

import random
import time
from typing import Any, Callable

import rich_click as click
from ytmusicapi import YTMusic

from spot_sync.core.exceptions import SearchError
from spot_sync.core.logger import get_logger
from spot_sync.spotify.models import TrackRecord
from spot_sync.youtube.matcher import similarity
from spot_sync.youtube.models import Candidate

logger = get_logger(__name__)


# Search options for ytmusicapi, queried in this order
SEARCH_OPTIONS = [
    {"filter": "songs", "ignore_spelling": True, "limit": 20},
    {"filter": "videos", "ignore_spelling": True, "limit": 20},
]


# =============================================================================
# RETRY CONFIGURATION FOR TRANSIENT ERRORS
# =============================================================================

# Maximum number of attempts for one API call
MAX_SEARCH_RETRIES = 5

# Base delay between retries (seconds), doubled on every attempt
RETRY_DELAY_BASE = 2.0

# Maximum delay between retries (seconds)
RETRY_DELAY_MAX = 30.0

# Jitter factor (±30%)
RETRY_JITTER_FACTOR = 0.3

# Extra delay multiplier when rate limit is detected (429 errors)
RATE_LIMIT_DELAY_MULTIPLIER = 2.0

TRANSIENT_PATTERNS = (
    # Empty or malformed response
    "expecting value",
    "json",
    "decode",
    # Rate limiting
    "429",
    "rate",
    "too many",
    "quota",
    "throttl",
    # Connection errors
    "connection",
    "timeout",
    "timed out",
    "reset",
    "refused",
    "ssl",
    # Server errors
    "500",
    "502",
    "503",
    "504",
    "temporarily",
    "unavailable",
    "server error",
    # Network errors
    "network",
    "unreachable",
    "dns",
)


def is_transient_error(error_str: str) -> bool:
    """Check whether a lowercase error message looks temporary."""
    return any(pattern in error_str for pattern in TRANSIENT_PATTERNS)


def is_rate_limit_error(error_str: str) -> bool:
    return (
        "429" in error_str
        or "rate" in error_str
        or "too many" in error_str
        or "quota" in error_str
    )


def calculate_delay(attempt: int, rate_limited: bool = False) -> float:
    """
    Backoff delay before retry number attempt + 1.

    Exponential (2s, 4s, 8s, ...) capped at RETRY_DELAY_MAX, doubled when
    rate limited, with ±30% jitter and a 0.5s floor.
    """
    base_delay = min(RETRY_DELAY_BASE * (2 ** attempt), RETRY_DELAY_MAX)
    if rate_limited:
        base_delay = min(base_delay * RATE_LIMIT_DELAY_MULTIPLIER, RETRY_DELAY_MAX)
    jitter = base_delay * RETRY_JITTER_FACTOR * (2 * random.random() - 1)
    return max(0.5, base_delay + jitter)


class YouTubeSearcher:
    """
    Searches YouTube Music and returns ranked candidates.

    Attributes:
        _ytmusic: ytmusicapi YTMusic client (anonymous, English).
        _sleep: Function used to wait between retries.

    Thread Safety:
        Only the orchestrator's main thread searches, so no locking is
        needed here.
    """

    def __init__(
        self,
        ytmusic: YTMusic | None = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._ytmusic = ytmusic if ytmusic is not None else YTMusic(language="en")
        self._sleep = sleep

    def search(self, query: str) -> list[Candidate]:
        """
        Search YouTube Music for a query.

        Args:
            query: Search string, typically TrackRecord.search_pattern.

        Returns:
            Candidates in ranking order: songs first, then videos,
            without duplicates. May be empty.

        Raises:
            SearchError: If the API keeps failing after all retries.
        """
        candidates: list[Candidate] = []
        seen_ids: set[str] = set()

        for options in SEARCH_OPTIONS:
            raw_results = self._search_with_retry(query, **options)

            for raw in raw_results:
                video_id = raw.get("videoId")
                if not video_id or video_id in seen_ids:
                    continue
                seen_ids.add(video_id)

                try:
                    candidates.append(Candidate.from_ytmusic_result(raw))
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug(f"Failed to parse search result: {e}")

        logger.debug(f"{len(candidates)} candidates for \"{query}\"")
        return candidates

    def _search_with_retry(self, query: str, **options: Any) -> list[dict[str, Any]]:
        """
        Run one ytmusicapi search, retrying transient errors.

        Raises:
            SearchError: After MAX_SEARCH_RETRIES failed attempts, or
                         immediately for a non-transient error.
        """
        for attempt in range(MAX_SEARCH_RETRIES):
            try:
                return self._ytmusic.search(query, **options) or []
            except Exception as e:
                error_str = str(e).lower()
                if not is_transient_error(error_str):
                    raise SearchError(
                        f"YouTube Music search failed: {e}",
                        details={"query": query, "original_error": str(e)}
                    ) from e

                if attempt == MAX_SEARCH_RETRIES - 1:
                    raise SearchError(
                        f"YouTube Music search failed after {MAX_SEARCH_RETRIES} attempts: {e}",
                        details={"query": query, "original_error": str(e)}
                    ) from e

                rate_limited = is_rate_limit_error(error_str)
                delay = calculate_delay(attempt, rate_limited)
                log_msg = (
                    f"Search attempt {attempt + 1}/{MAX_SEARCH_RETRIES} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                if rate_limited:
                    logger.warning(log_msg + " (rate limit detected)")
                else:
                    logger.debug(log_msg)
                self._sleep(delay)

        return []


def prompt_candidate(record: TrackRecord, candidate: Candidate) -> bool:
    """
    Ask the user whether an accepted candidate is the right song.

    Used as the confirm callback of select_candidate() in interactive mode.
    """
    return click.confirm(
        f"Accept \"{candidate.display_text}\" ({candidate.locator}, "
        f"similarity {similarity(record, candidate):.0f}) "
        f"for \"{record.display_name}\"?",
        default=True
    )
