"""
Utility functions for spot-sync.

This module provides common string helpers used across the application:
    - Accent folding to plain ASCII
    - Filename-safe token form used for both temporary names and matching
    - Spotify URI/URL parsing

Usage:
    from spot_sync.utils import (
        fold_accents,
        sanitize_name,
        extract_spotify_id,
    )
"""

import re
import unicodedata


# Characters that break paths on at least one supported platform
PATH_BREAKING_CHARACTERS = ("/", "\\", ".", "?", "<", ">", ":", "*")

# Letters that have no Unicode decomposition but a common ASCII spelling
_ACCENT_TRANSLATIONS = str.maketrans({
    "ß": "ss",
    "æ": "ae",
    "Æ": "AE",
    "œ": "oe",
    "Œ": "OE",
    "ø": "o",
    "Ø": "O",
    "đ": "d",
    "Đ": "D",
    "ł": "l",
    "Ł": "L",
    "þ": "th",
    "Þ": "TH",
})

# Separators turned into a dash by sanitize_name()
_SEPARATORS = re.compile(r"[ &_=+:/\\]")
# Anything else that is not ASCII alphanumeric, dash or dot is dropped
_ILLEGAL_NAME = re.compile(r"[^a-z0-9\-.]")
_DASHES = re.compile(r"-+")


def fold_accents(text: str) -> str:
    """
    Replace accented characters with their closest ASCII equivalent.

    Decomposes the string (NFKD) and drops the combining marks, then maps
    the handful of letters that Unicode does not decompose (ß, æ, ø, ...).

    Examples:
        fold_accents("Beyoncé")   # "Beyonce"
        fold_accents("Sigur Rós") # "Sigur Ros"
        fold_accents("Mø")        # "Mo"
    """
    normalized = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in normalized if not unicodedata.combining(c))
    return stripped.translate(_ACCENT_TRANSLATIONS)


def strip_path_characters(text: str) -> str:
    """
    Remove characters that cannot appear in a file name.

    Args:
        text: Raw name, typically "Artist - Title".

    Returns:
        The text without any of PATH_BREAKING_CHARACTERS.
    """
    for symbol in PATH_BREAKING_CHARACTERS:
        text = text.replace(symbol, "")
    return text


def sanitize_name(text: str) -> str:
    """
    Turn a string into a lowercase, dash-separated, filename-safe token.

    This is the comparable form shared by the hidden temporary file names
    and by the candidate matcher, so a title and a search result that
    differ only in punctuation, spacing or accents compare equal.

    Steps:
        1. Lowercase and trim surrounding spaces
        2. Fold accents to ASCII
        3. Turn separators (space & _ = + : / \\) into "-"
        4. Drop everything that is not a-z, 0-9, "-" or "."
        5. Collapse runs of dashes

    Examples:
        sanitize_name("Daft Punk - One More Time")  # "daft-punk-one-more-time"
        sanitize_name(".Beyoncé - Halo")            # ".beyonce-halo"
        sanitize_name("Radio Edit")                 # "radio-edit"
    """
    name = text.lower().strip(" ")
    name = fold_accents(name)
    name = _SEPARATORS.sub("-", name)
    name = _ILLEGAL_NAME.sub("", name)
    return _DASHES.sub("-", name)


def extract_spotify_id(url_or_id: str) -> str:
    """
    Extract Spotify ID from a URL or URI, or return ID as-is.

    Handles various Spotify reference formats:
        - https://open.spotify.com/playlist/ID
        - https://open.spotify.com/playlist/ID?si=xxx
        - spotify:playlist:ID
        - spotify:user:OWNER:playlist:ID
        - Just the ID

    Examples:
        extract_spotify_id("https://open.spotify.com/playlist/abc123?si=xyz")
        # Returns: "abc123"

        extract_spotify_id("spotify:user:someone:playlist:abc123")
        # Returns: "abc123"
    """
    url_or_id = url_or_id.strip()

    if url_or_id.startswith("spotify:"):
        return url_or_id.split(":")[-1]

    if "spotify.com" in url_or_id:
        url_or_id = url_or_id.split("?")[0]
        return url_or_id.rstrip("/").split("/")[-1]

    return url_or_id
