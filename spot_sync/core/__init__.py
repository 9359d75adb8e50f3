"""
Core module for spot-sync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and run-time options
    - logger: Logging system with multiple outputs

Usage:
    from spot_sync.core import (
        Config, SyncOptions, load_config,
        setup_logging, get_logger,
        SpotSyncError, ConfigError
    )
"""

from spot_sync.core.config import (
    Config,
    SpotifyConfig,
    SyncConfig,
    SyncOptions,
    load_config,
)
from spot_sync.core.exceptions import (
    ConfigError,
    DownloadError,
    FolderError,
    MetadataError,
    NormalizationError,
    SearchError,
    SpotifyError,
    SpotSyncError,
    TrackRecordError,
)
from spot_sync.core.logger import (
    get_logger,
    log_sync_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "SyncConfig",
    "SyncOptions",
    "load_config",
    # Exceptions
    "SpotSyncError",
    "ConfigError",
    "FolderError",
    "SpotifyError",
    "TrackRecordError",
    "SearchError",
    "DownloadError",
    "MetadataError",
    "NormalizationError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_sync_failure",
    "shutdown_logging",
]
