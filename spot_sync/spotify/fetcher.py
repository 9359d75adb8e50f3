"""
Spotify catalog fetcher for spot-sync.

This module fetches the remote track list (the saved library or a
playlist) and turns it into the ordered list of TrackRecords the sync
orchestrator iterates.

Workflow:
    1. Fetch every item of the library or playlist (paginated)
    2. Drop items that cannot be synchronized (removed tracks, local
       files, podcast episodes, items without an ID)
    3. Build one TrackRecord per remaining item, in remote order
    4. Drop duplicates that would map to the same local file name, and
       give colliding temporary names a digest
"""

from dataclasses import replace
from pathlib import Path
from typing import Any

from spot_sync.core.logger import get_logger
from spot_sync.spotify.client import SpotifyClient
from spot_sync.spotify.models import TrackRecord, build_track_records, with_name_digest
from spot_sync.utils import extract_spotify_id

logger = get_logger(__name__)


class SpotifyFetcher:
    """
    Fetches remote tracks from Spotify and builds TrackRecords.

    Attributes:
        _client: SpotifyClient singleton instance.
        _extension: Audio container extension used for file names.
        _directory: Folder checked for already-synchronized files.

    Example:
        fetcher = SpotifyFetcher(SpotifyClient(), ".mp3")
        records = fetcher.fetch_library()
    """

    def __init__(
        self,
        client: SpotifyClient,
        extension: str = ".mp3",
        directory: Path | None = None
    ) -> None:
        self._client = client
        self._extension = extension
        self._directory = directory

    def fetch_library(self) -> list[TrackRecord]:
        """
        Build records for the user's saved library.

        Raises:
            SpotifyError: On authentication or API failure.
            TrackRecordError: If a track has no title or artist.
        """
        logger.info("Fetching library tracks from Spotify...")
        items = self._client.current_user_all_saved_tracks()
        return self._build_records(items)

    def fetch_playlist(self, playlist_ref: str) -> list[TrackRecord]:
        """
        Build records for a playlist.

        Args:
            playlist_ref: "spotify:user:OWNER:playlist:ID",
                          "spotify:playlist:ID", an open.spotify.com URL
                          or a bare playlist ID.

        Raises:
            SpotifyError: If the playlist is missing, private or the API fails.
            TrackRecordError: If a track has no title or artist.
        """
        playlist_id = extract_spotify_id(playlist_ref)
        logger.info(f"Fetching playlist {playlist_id} from Spotify...")
        items = self._client.playlist_all_items(playlist_id)
        return self._build_records(items)

    def _build_records(self, items: list[dict[str, Any]]) -> list[TrackRecord]:
        valid_tracks = []
        skipped = 0
        for item in items:
            if not self._is_valid_track(item):
                skipped += 1
                continue
            valid_tracks.append(item["track"])

        if skipped > 0:
            logger.warning(f"Skipped {skipped} invalid tracks (local files, unavailable, etc.)")

        records = build_track_records(valid_tracks, self._extension, self._directory)
        return deduplicate_records(records)

    @staticmethod
    def _is_valid_track(track_item: dict[str, Any] | None) -> bool:
        """
        Check if a library or playlist item can be synchronized.

        Invalid items:
            - None (removed from Spotify)
            - Missing track object
            - Local files (is_local = True)
            - Podcast episodes (type != 'track')
            - No track ID
        """
        if track_item is None or not isinstance(track_item, dict):
            return False

        track = track_item.get("track")
        if not isinstance(track, dict):
            return False

        if track.get("is_local", False):
            return False

        if track.get("type", "track") != "track":
            return False

        if not track.get("id"):
            return False

        return True


def deduplicate_records(records: list[TrackRecord]) -> list[TrackRecord]:
    """
    Make every record own its files.

    Records sharing a final file name (case-insensitive) are the same
    track: only the first is kept. Distinct names can still sanitize to
    the same temporary name ("Oh Yeah" and "Oh, Yeah!"); the later record
    then gets a digest of its base_name appended, since post-processing
    workers must never touch the same path.
    """
    seen_final: set[str] = set()
    seen_temporary: set[str] = set()
    unique = []
    for record in records:
        key = record.filename_final.lower()
        if key in seen_final:
            logger.debug(f"Duplicate track ignored: {record.display_name}")
            continue

        if record.temp_base_name in seen_temporary:
            record = replace(
                record,
                temp_base_name=with_name_digest(record.temp_base_name, record.base_name)
            )
            if record.temp_base_name in seen_temporary:
                logger.debug(f"Duplicate track ignored: {record.display_name}")
                continue

        seen_final.add(key)
        seen_temporary.add(record.temp_base_name)
        unique.append(record)
    return unique


# =========================================================================
# Convenience Functions (called by CLI)
# =========================================================================

def fetch_track_records(
    playlist_ref: str | None,
    extension: str = ".mp3",
    directory: Path | None = None
) -> list[TrackRecord]:
    """
    Fetch the records to synchronize.

    Args:
        playlist_ref: Playlist URI/URL/ID, or None for the saved library.
        extension: Audio container extension.
        directory: Folder checked for already-synchronized files.

    Returns:
        Ordered, de-duplicated list of TrackRecords.
    """
    fetcher = SpotifyFetcher(SpotifyClient(), extension, directory)
    if playlist_ref is None:
        return fetcher.fetch_library()
    return fetcher.fetch_playlist(playlist_ref)
