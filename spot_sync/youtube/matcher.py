"""
Candidate matching for spot-sync.

This module decides whether a YouTube search result plausibly is the
song a TrackRecord describes. It only filters: the search source's
ranking order is authoritative, and the first accepted candidate wins.

Matching Algorithm (accepts):
    1. Reject anything advertised as a "full album" upload
    2. Word match: song, artist and every featured artist, normalized to
       the sanitize_name() token form, must all appear in the candidate
    3. Variant guard: reject a candidate that looks like a different
       variant (a Live upload for a studio track, a Remix for a cover...)
    4. Accept otherwise

accepts() is a pure function: no I/O, no state, same answer for the
same inputs.

Usage:
    from spot_sync.youtube.matcher import accepts, select_candidate

    if accepts(record, "Daft Punk - One More Time (Official Audio)"):
        ...
    chosen = select_candidate(record, candidates)
"""

from typing import Callable, Iterable

from rapidfuzz import fuzz

from spot_sync.core.logger import get_logger
from spot_sync.spotify.models import VARIANT_ALIASES, TrackRecord, matches_variant
from spot_sync.utils import sanitize_name
from spot_sync.youtube.models import Candidate

logger = get_logger(__name__)


# Decoy uploads that bundle a whole record in one video
FULL_ALBUM_MARKER = "full album"

# Soundtrack credits such as "Cast of Hamilton" or "Glee Cast"
CAST_PREFIX = "cast of"
CAST_SUFFIX = " cast"


def normalize_credit(item: str) -> str:
    """
    Normalize a song or artist credit into its comparable token.

    Steps:
        1. Lowercase
        2. Drop a leading "cast of" / trailing " cast"
        3. Keep only the first name of an "A & B" / "A and B" credit
        4. Trim and sanitize

    Examples:
        normalize_credit("Simon & Garfunkel")    # "simon"
        normalize_credit("Cast of Hamilton")     # "hamilton"
        normalize_credit("One More Time")        # "one-more-time"
    """
    token = item.lower()
    if len(token) > len(CAST_PREFIX) and token.startswith(CAST_PREFIX):
        token = token[len(CAST_PREFIX):]
    elif len(token) > len(CAST_SUFFIX) and token.endswith(CAST_SUFFIX):
        token = token[:-len(CAST_SUFFIX)]
    token = token.replace(" & ", " and ")
    token = token.split(" and ")[0]
    return sanitize_name(token.strip())


def match_tokens(record: TrackRecord) -> list[str]:
    """Tokens that must all appear in an acceptable candidate's text."""
    return [
        normalize_credit(item)
        for item in (record.song, record.artist, *record.featurings)
    ]


def accepts(record: TrackRecord, candidate_text: str) -> bool:
    """
    Decide whether candidate_text plausibly represents the record.

    Args:
        record: The track being synchronized.
        candidate_text: Display text of a search result, typically
                        "Artist - Title (Official Video)".

    Returns:
        True if the candidate passes the full-album check, the word
        match and the variant guard.

    Examples:
        Record Daft Punk / One More Time (Studio):
            "Daft Punk - One More Time"                        -> True
            "Daft Punk - Discovery Full Album"                 -> False
            "Daft Punk - Around the World"                     -> False
            "Daft Punk - One More Time (Live at Coachella 2006)" -> False
    """
    if FULL_ALBUM_MARKER in candidate_text.lower():
        return False

    sequence = sanitize_name(candidate_text)
    for token in match_tokens(record):
        if token not in sequence:
            return False

    for variant, _ in VARIANT_ALIASES:
        if variant is not record.variant and matches_variant(candidate_text, variant):
            return False

    return True


def similarity(record: TrackRecord, candidate: Candidate) -> float:
    """
    Fuzzy similarity (0-100) between the record and a candidate.

    Only used for diagnostics and the interactive prompt; it never
    changes which candidate is selected.
    """
    return fuzz.token_set_ratio(
        f"{record.artist} {record.title}".lower(),
        candidate.display_text.lower()
    )


def select_candidate(
    record: TrackRecord,
    candidates: Iterable[Candidate],
    confirm: Callable[[TrackRecord, Candidate], bool] | None = None
) -> Candidate | None:
    """
    Pick the first candidate, in source order, that the matcher accepts.

    Args:
        record: The track being synchronized.
        candidates: Search results in the source's ranking order.
        confirm: Optional interactive check. When given, an accepted
                 candidate is only selected if confirm() returns True.

    Returns:
        The selected candidate, or None if nothing qualifies.
    """
    for candidate in candidates:
        if not accepts(record, candidate.display_text):
            logger.debug(f"Rejected \"{candidate.display_text}\" for {record.display_name}")
            continue

        logger.debug(
            f"Accepted \"{candidate.display_text}\" for {record.display_name} "
            f"(similarity {similarity(record, candidate):.1f})"
        )
        if confirm is not None and not confirm(record, candidate):
            continue
        return candidate

    return None
