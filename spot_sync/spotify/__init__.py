"""
Spotify module for spot-sync.

This module handles the remote side of a synchronization:
    - client: Singleton spotipy wrapper (OAuth or client credentials)
    - fetcher: Library/playlist fetching and record construction
    - models: TrackRecord, the Variant table and the record builder

Usage:
    from spot_sync.spotify import SpotifyClient, fetch_track_records

    SpotifyClient.init(client_id, client_secret)
    records = fetch_track_records(playlist_ref=None)  # saved library
"""

from spot_sync.spotify.client import SpotifyClient
from spot_sync.spotify.fetcher import SpotifyFetcher, fetch_track_records
from spot_sync.spotify.models import (
    TrackRecord,
    Variant,
    build_track_record,
    build_track_records,
    classify_variant,
    matches_variant,
)

__all__ = [
    "SpotifyClient",
    "SpotifyFetcher",
    "fetch_track_records",
    "TrackRecord",
    "Variant",
    "build_track_record",
    "build_track_records",
    "classify_variant",
    "matches_variant",
]
