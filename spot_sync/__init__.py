"""
spot-sync: Keep a local music folder in sync with Spotify.

For every track in the user's Spotify library (or a given playlist),
spot-sync decides whether a satisfactory local MP3 already exists. If
not, it finds the best matching YouTube Music result, downloads it, and
commits it into the folder with ID3 metadata and normalized loudness.

Architecture:
    spotify/    - Spotify API client, track fetching, TrackRecord builder
    youtube/    - YouTube Music search and the candidate matcher
    download/   - yt-dlp fetch, ID3 tagging, FFmpeg normalization
    sync/       - Session state, orchestrator, interrupt cleanup
    core/       - Configuration, exceptions, logging
    utils/      - Name sanitization helpers
    cli.py      - Command-line interface

Per-track pipeline:
    Missing -> Searching -> Found -> Fetched -> PostProcessing -> Committed

    Search and fetch run one track at a time on the main thread. Tagging
    and normalization run on a bounded worker pool, and each worker
    renames its track from the hidden temporary name to the final name
    when it is done.

Usage:
    Command Line:
        spot-sync --folder ~/Music
        spot-sync --folder ~/Music --playlist "spotify:playlist:..."
        spot-sync --folder ~/Music --replace-local --log

    Python API:
        from spot_sync.core import load_config, SyncOptions
        from spot_sync.spotify import SpotifyClient, fetch_track_records
        from spot_sync.sync import SyncSession, build_orchestrator

        config = load_config()
        SpotifyClient.init(config.spotify.client_id, config.spotify.client_secret)
        session = SyncSession(fetch_track_records(None), SyncOptions())
        report = build_orchestrator(session, config).run()

Configuration:
    Requires a config.yaml file in the current directory:

        spotify:
          client_id: "your_client_id"
          client_secret: "your_client_secret"

        sync:
          extension: ".mp3"
          workers: 4
          cookie_file: null
"""

__version__ = "0.1.0"
__author__ = "spot-sync"
__license__ = "MIT"

from spot_sync.core import (
    Config,
    ConfigError,
    SpotSyncError,
    SyncOptions,
    get_logger,
    load_config,
    setup_logging,
)
from spot_sync.spotify import SpotifyClient, TrackRecord, Variant

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "SyncOptions",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotSyncError",
    "ConfigError",
    # Models
    "SpotifyClient",
    "TrackRecord",
    "Variant",
]
