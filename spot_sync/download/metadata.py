"""
Metadata writing for spot-sync.

This module embeds ID3 tags into synchronized MP3 files and fetches the
album artwork they carry.

ID3 Frame Mapping:
    TrackRecord field   -> ID3 frame
    -----------------   ---------
    title               -> TIT2
    artist              -> TPE1
    album               -> TALB
    artwork bytes       -> APIC (front cover, image/jpeg)
    source_locator      -> COMM (desc "YouTubeURL", lang "eng")

The COMM frame is read back on later runs so --replace-local can tell
whether a local file already comes from the best search result.

Dependencies:
    - mutagen: ID3 tag manipulation
    - requests: Artwork download

Usage:
    from spot_sync.download.metadata import download_artwork, write_metadata

    artwork = download_artwork(record.artwork_url, record.filename_artwork)
    write_metadata(path, record.title, record.artist, record.album,
                   artwork, record.source_locator)
"""

from pathlib import Path

import requests
from mutagen import MutagenError
from mutagen.id3 import APIC, COMM, ID3, ID3NoHeaderError, TALB, TIT2, TPE1
from mutagen.mp3 import MP3

from spot_sync.core.exceptions import MetadataError
from spot_sync.core.logger import get_logger

logger = get_logger(__name__)


# COMM frame description holding the origin URL
SOURCE_LOCATOR_DESC = "YouTubeURL"

ARTWORK_TIMEOUT = 30  # seconds


def download_artwork(url: str, artwork_path: str | Path) -> bytes | None:
    """
    Download album artwork to a transient file and return its bytes.

    Args:
        url: Artwork URL from Spotify. Empty means no artwork.
        artwork_path: Where to write the image (removed later by the caller).

    Returns:
        Image bytes, or None if there is no URL or the download failed.
        Failures are logged as warnings, never raised.
    """
    if not url:
        return None

    try:
        response = requests.get(url, timeout=ARTWORK_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Something wrong while downloading artwork file: {e}")
        return None

    data = response.content
    try:
        Path(artwork_path).write_bytes(data)
    except OSError as e:
        logger.warning(f"Unable to write artwork file {artwork_path}: {e}")
    return data


def _load_id3(file_path: Path) -> MP3:
    try:
        audio = MP3(file_path, ID3=ID3)
        if audio.tags is None:
            audio.add_tags()
    except ID3NoHeaderError:
        audio = MP3(file_path)
        audio.add_tags()
    return audio


def write_metadata(
    file_path: str | Path,
    title: str,
    artist: str,
    album: str,
    artwork: bytes | None = None,
    source_locator: str = ""
) -> None:
    """
    Rewrite the ID3 tags of an MP3 file in place.

    Existing title, artist, album, cover and YouTubeURL comment frames are
    replaced; unrelated frames are kept.

    Args:
        file_path: MP3 file to tag.
        title: Track title (with featuring suffix).
        artist: Main artist.
        album: Album name.
        artwork: JPEG bytes for the front cover, or None to leave covers as is.
        source_locator: YouTube URL stored in a COMM frame when non-empty.

    Raises:
        MetadataError: If the file cannot be parsed or saved.
    """
    file_path = Path(file_path)

    try:
        audio = _load_id3(file_path)
        tags = audio.tags

        tags.setall("TIT2", [TIT2(encoding=3, text=title)])
        tags.setall("TPE1", [TPE1(encoding=3, text=artist)])
        tags.setall("TALB", [TALB(encoding=3, text=album)])

        if artwork:
            tags.delall("APIC")
            tags.add(APIC(
                encoding=3,
                mime="image/jpeg",
                type=3,  # Front cover
                desc="Front cover",
                data=artwork
            ))

        if source_locator:
            tags.delall(f"COMM:{SOURCE_LOCATOR_DESC}:eng")
            tags.add(COMM(
                encoding=3,
                lang="eng",
                desc=SOURCE_LOCATOR_DESC,
                text=source_locator
            ))

        audio.save(v2_version=3)
    except (MutagenError, OSError) as e:
        raise MetadataError(
            f"Failed to write metadata: {e}",
            details={"file_path": str(file_path), "original_error": str(e)}
        ) from e

    logger.debug(f"Metadata written: {file_path.name}")


def read_source_locator(file_path: str | Path) -> str:
    """
    Read the YouTube URL a previous run stored in the file's tags.

    Returns:
        The URL, or "" when the file has no such frame or cannot be read.
    """
    try:
        tags = ID3(file_path)
    except (MutagenError, OSError):
        return ""

    for frame in tags.getall("COMM"):
        if frame.desc == SOURCE_LOCATOR_DESC and frame.text:
            return str(frame.text[0])
    return ""
