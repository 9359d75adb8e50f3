"""
Data models for Spotify tracks as seen by the synchronizer.

This module turns a raw Spotify track object into a TrackRecord: the
canonical, locally-sanitized representation of one remote song plus its
filesystem identity. The same module owns the song variant table
(Studio, Live, Cover, ...) because a record's variant is decided once,
here, and the candidate matcher reuses the exact same alias sets.

Design Decisions:
    - Variant classification is data-driven: VARIANT_ALIASES is evaluated
      in a fixed priority order and the first match wins.
    - TrackRecord is a regular (non-frozen) dataclass because the
      orchestrator updates is_local and source_locator. Everything else is
      computed at construction and never re-derived.
    - Records with an empty title or no credited artist are rejected with
      TrackRecordError instead of producing a degenerate file name.

Usage:
    from spot_sync.spotify.models import build_track_record

    record = build_track_record(track_data, extension=".mp3")
    print(record.filename_final)   # "Daft Punk - One More Time.mp3"
    print(record.search_pattern)   # "daft punk one more time"
"""

import glob
import hashlib
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from spot_sync.core.exceptions import TrackRecordError
from spot_sync.core.logger import get_logger
from spot_sync.utils import fold_accents, sanitize_name, strip_path_characters

logger = get_logger(__name__)


# =============================================================================
# SONG VARIANTS
# =============================================================================

class Variant(Enum):
    """Performance type of a song. Exactly one per TrackRecord."""
    STUDIO = "studio"
    LIVE = "live"
    COVER = "cover"
    REMIX = "remix"
    ACOUSTIC = "acoustic"
    KARAOKE = "karaoke"


# Years that mark a live recording ("Live at Wembley 1986")
LIVE_YEARS = tuple(str(year) for year in range(1950, 2051))

# Evaluated top to bottom; the first variant with a matching alias wins.
VARIANT_ALIASES: tuple[tuple[Variant, tuple[str, ...]], ...] = (
    (Variant.LIVE, ("@", "live", "perform", "tour") + LIVE_YEARS),
    (Variant.COVER, ("cover", "vs")),
    (Variant.REMIX, ("remix", "radio edit")),
    (Variant.ACOUSTIC, ("acoustic",)),
    (Variant.KARAOKE, ("karaoke",)),
)


def _alias_matches(text: str, alias: str) -> bool:
    # Single characters such as "@" do not survive sanitize_name()
    if len(alias) == 1:
        return alias in text.lower()

    sanitized_alias = sanitize_name(alias)
    if len(sanitized_alias) == len(alias):
        alias = sanitized_alias
    return alias in sanitize_name(text)


def matches_variant(text: str, variant: Variant) -> bool:
    """
    Check whether text carries any alias of the given variant.

    Matching is a case-insensitive, locale-free substring test on the
    sanitized form of the text (see sanitize_name), so "Radio Edit" and
    "radio_edit" both match the Remix alias "radio edit".

    Args:
        text: Raw title or candidate display text.
        variant: Variant whose aliases are tested. STUDIO has no aliases
                 and never matches.

    Returns:
        True if at least one alias is a substring of the text.
    """
    for candidate_variant, aliases in VARIANT_ALIASES:
        if candidate_variant is variant:
            return any(_alias_matches(text, alias) for alias in aliases)
    return False


def classify_variant(title: str) -> Variant:
    """
    Classify a raw title into exactly one Variant.

    Examples:
        classify_variant("One More Time")                     # Variant.STUDIO
        classify_variant("One More Time - Live at Coachella") # Variant.LIVE
        classify_variant("Levels - Radio Edit")               # Variant.REMIX
    """
    for variant, _ in VARIANT_ALIASES:
        if matches_variant(title, variant):
            return variant
    return Variant.STUDIO


# =============================================================================
# TRACK RECORD
# =============================================================================

FEATURING_MARKER = " (ft. "
_FEATURING_PATTERN = re.compile(r"\b(feat|ft)\. ", re.IGNORECASE)


def _has_foreign_letters(name: str) -> bool:
    """True when sanitize_name() would drop letters of a non-Latin script."""
    return any(ch.isalpha() and not ch.isascii() for ch in fold_accents(name))


@dataclass
class TrackRecord:
    """
    Canonical representation of one remote song.

    Attributes:
        title: Cleaned title, including the "(ft. ...)" suffix when the song
               has featured artists.
               Example: "Get Lucky (ft. Pharrell Williams and Nile Rodgers)"
        song: Title with the featuring suffix stripped. Never empty.
              Example: "Get Lucky"
        artist: First credited artist.
        featurings: Remaining credited artists, in credit order.
        album: Album name with square/curly brackets turned into parentheses.
        duration_seconds: Track duration truncated to whole seconds.
        artwork_url: Album cover URL, or "" when Spotify has none.
        variant: Performance type decided at construction.
        base_name: Sanitized "Artist - Title", the final file name stem.
        temp_base_name: Hidden, lowercase, dash-separated form of base_name.
                        Example: ".daft-punk-one-more-time"
        extension: Audio container extension, including the dot.
        is_local: Whether base_name + extension existed at construction.
        source_locator: YouTube URL of the accepted candidate, empty until a
                        candidate is accepted (or read back from local tags).
        spotify_id: Spotify track ID, used in logs.
        spotify_url: Spotify URL, used in logs.
    """

    title: str
    song: str
    artist: str
    featurings: tuple[str, ...]
    album: str
    duration_seconds: int
    artwork_url: str
    variant: Variant
    base_name: str
    temp_base_name: str
    extension: str
    is_local: bool = False
    source_locator: str = ""
    spotify_id: str = ""
    spotify_url: str = ""

    @property
    def display_name(self) -> str:
        """Name used in progress lines and in the failed list."""
        return self.base_name

    @property
    def filename_final(self) -> str:
        return self.base_name + self.extension

    @property
    def filename_temporary(self) -> str:
        return self.temp_base_name + self.extension

    @property
    def filename_artwork(self) -> str:
        return self.temp_base_name + ".jpg"

    @property
    def filename_normalized(self) -> str:
        return self.temp_base_name + ".norm" + self.extension

    @property
    def search_pattern(self) -> str:
        """
        Query string for the candidate source.

        The hidden-file marker is dropped and dashes become spaces, so
        ".daft-punk-one-more-time" is searched as "daft punk one more time".
        """
        if _has_foreign_letters(self.base_name):
            return self.base_name.replace(" - ", " ")
        # Derived from base_name, so a disambiguating digest never reaches the query
        return sanitize_name("." + self.base_name)[1:].replace("-", " ")

    def temp_files(self) -> list[str]:
        """
        Every temporary artifact name this record may leave behind.

        Entries containing "*" are glob patterns for yt-dlp partial and
        fragment files, which carry the source container before the
        marker (".name.webm.part").
        """
        return [
            self.temp_base_name,
            self.filename_temporary,
            self.temp_base_name + ".part",
            self.temp_base_name + ".part*",
            self.temp_base_name + ".*.part*",
            self.temp_base_name + ".ytdl",
            self.temp_base_name + ".*.ytdl",
            self.filename_normalized,
            self.filename_artwork,
        ]

    def existing_temp_files(self) -> list[str]:
        """Temporary artifacts currently present on disk, globs expanded."""
        found: list[str] = []
        for name in self.temp_files():
            if "*" in name:
                # temp_base_name only holds [a-z0-9.-], so no escaping needed
                matches = sorted(glob.glob(name))
            else:
                matches = [name] if os.path.exists(name) else []
            found.extend(m for m in matches if m not in found)
        return found


def clean_title(title: str) -> str:
    """
    Drop version suffixes from a Spotify title.

    Truncates at the first " - " delimiter ("Song - Remastered 2011"), then
    at " live " ("Song live at Wembley"), then trims whitespace.
    """
    title = title.split(" - ")[0]
    if " live " in title:
        title = title.split(" live ")[0]
    return title.strip()


def format_featurings(title: str, featurings: tuple[str, ...]) -> tuple[str, str]:
    """
    Attach featured artists to a title.

    Args:
        title: Cleaned title.
        featurings: Featured artists in credit order.

    Returns:
        (title, song) where title carries the normalized "ft." marker and
        song is the title without the "(ft. ...)" suffix.

    Examples:
        format_featurings("Get Lucky", ("Pharrell Williams", "Nile Rodgers"))
        # ("Get Lucky (ft. Pharrell Williams and Nile Rodgers)", "Get Lucky")

        format_featurings("Song (feat. Someone)", ("Someone",))
        # ("Song (ft. Someone)", "Song")
    """
    if not featurings:
        return title, title

    lowered = title.lower()
    if "feat. " in lowered or "ft. " in lowered:
        title = _FEATURING_PATTERN.sub("ft. ", title)
    else:
        if len(featurings) > 1:
            joined = ", ".join(featurings[:-1]) + " and " + featurings[-1]
        else:
            joined = featurings[0]
        title = f"{title}{FEATURING_MARKER}{joined})"

    return title, title.split(FEATURING_MARKER)[0]


def clean_album(album: str) -> str:
    """Replace square and curly brackets with parentheses."""
    return album.translate(str.maketrans("[]{}", "()()"))


def make_base_name(artist: str, title: str) -> str:
    """
    Build the sanitized "Artist - Title" file name stem.

    Example:
        make_base_name("Beyoncé", "Halo?")  # "Beyonce - Halo"
    """
    name = strip_path_characters(f"{artist} - {title}")
    name = name.replace("  ", " ")
    name = fold_accents(name)
    return name.strip()


def make_temp_base_name(base_name: str) -> str:
    """
    Hidden-file variant of base_name (leading dot, sanitized).

    Letters of non-Latin scripts do not survive sanitization, so two such
    titles by the same artist would share one temporary file. Those names
    get a short digest of base_name appended.

    Examples:
        make_temp_base_name("Daft Punk - One More Time")  # ".daft-punk-one-more-time"
        make_temp_base_name("YOASOBI - 群青")              # ".yoasobi-<12 hex digits>"
    """
    temp_base_name = sanitize_name("." + base_name)
    if _has_foreign_letters(base_name):
        temp_base_name = with_name_digest(temp_base_name, base_name)
    return temp_base_name


def with_name_digest(temp_base_name: str, base_name: str) -> str:
    """
    Append a 12-character sha1 digest of base_name to a temporary name.

    Example:
        with_name_digest(".daft-punk-oh-yeah", "Daft Punk - Oh, Yeah")
        # ".daft-punk-oh-yeah-<12 hex digits>"
    """
    digest = hashlib.sha1(base_name.encode("utf-8")).hexdigest()[:12]
    stem = temp_base_name.rstrip("-")
    return f"{stem}-{digest}" if stem != "." else "." + digest


def _pick_artwork_url(album_info: dict[str, Any]) -> str:
    # Spotify lists album images widest first
    images = album_info.get("images") or []
    if not images or not isinstance(images[0], dict):
        return ""
    return images[0].get("url") or ""


def build_track_record(
    track_data: dict[str, Any],
    extension: str = ".mp3",
    directory: Path | None = None
) -> TrackRecord:
    """
    Create a TrackRecord from a Spotify track object.

    Args:
        track_data: Track object from the Spotify API (the 'track' field of
                    a playlist or saved-tracks item).
        extension: Audio container extension, including the dot.
        directory: Folder checked for an existing final file. Defaults to
                   the current working directory.

    Returns:
        TrackRecord ready for the sync orchestrator.

    Raises:
        TrackRecordError: If the track has no title or no named artist.

    Behavior:
        1. Extract title, first artist, featured artists, album, duration
           and artwork URL
        2. Classify the variant from the raw title
        3. Clean the title (" - " and " live " truncation)
        4. Attach featurings and derive song
        5. Replace brackets in the album name
        6. Derive base_name and temp_base_name
        7. Check whether the final file already exists
    """
    raw_title = (track_data.get("name") or "").strip()
    artist_names = [
        a.get("name", "").strip()
        for a in track_data.get("artists") or []
        if isinstance(a, dict)
    ]

    if not raw_title:
        raise TrackRecordError(
            "Track has no title",
            details={"spotify_id": track_data.get("id")}
        )
    if not artist_names or not artist_names[0]:
        raise TrackRecordError(
            f"Track \"{raw_title}\" has no credited artist",
            details={"spotify_id": track_data.get("id")}
        )

    artist = artist_names[0]
    featurings = tuple(name for name in artist_names[1:] if name)
    album_info = track_data.get("album") or {}

    variant = classify_variant(raw_title)

    title, song = format_featurings(clean_title(raw_title), featurings)
    if not song:
        raise TrackRecordError(
            f"Track \"{raw_title}\" has an empty title once cleaned",
            details={"spotify_id": track_data.get("id")}
        )

    base_name = make_base_name(artist, title)
    record = TrackRecord(
        title=title,
        song=song,
        artist=artist,
        featurings=featurings,
        album=clean_album(album_info.get("name") or ""),
        duration_seconds=int(track_data.get("duration_ms") or 0) // 1000,
        artwork_url=_pick_artwork_url(album_info),
        variant=variant,
        base_name=base_name,
        temp_base_name=make_temp_base_name(base_name),
        extension=extension,
        spotify_id=track_data.get("id") or "",
        spotify_url=(track_data.get("external_urls") or {}).get("spotify", ""),
    )

    final_path = Path(directory or ".") / record.filename_final
    record.is_local = final_path.exists()

    logger.debug(
        f"Built record \"{record.display_name}\" "
        f"(variant={record.variant.value}, local={record.is_local})"
    )
    return record


def build_track_records(
    tracks: Iterable[dict[str, Any]],
    extension: str = ".mp3",
    directory: Path | None = None
) -> list[TrackRecord]:
    """
    Build records for a whole playlist, preserving order.

    Raises:
        TrackRecordError: Propagated from the first malformed track, after
                          logging it.
    """
    records = []
    for track_data in tracks:
        try:
            records.append(build_track_record(track_data, extension, directory))
        except TrackRecordError as e:
            logger.error(f"Cannot build track record: {e.message}")
            raise
    return records
