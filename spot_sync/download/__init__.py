"""
Download module for spot-sync.

This module provides everything that happens to a track's audio file:
    - downloader: Fetch an accepted candidate with yt-dlp
    - metadata: Artwork download and ID3 tag writing
    - normalizer: FFmpeg loudness measurement and gain
    - postprocess: The worker-side pipeline chaining the two above

Usage:
    from spot_sync.download import Downloader, PostProcessor

    downloader = Downloader(extension=".mp3")
    downloader.fetch(candidate, record.temp_base_name)
    PostProcessor(options).process(record, fresh=True)
"""

from spot_sync.download.downloader import Downloader, ErrorType, classify_error
from spot_sync.download.metadata import (
    download_artwork,
    read_source_locator,
    write_metadata,
)
from spot_sync.download.normalizer import apply_delta, measure_delta, normalize
from spot_sync.download.postprocess import PostProcessor

__all__ = [
    # Fetch
    "Downloader",
    "ErrorType",
    "classify_error",
    # Metadata
    "download_artwork",
    "read_source_locator",
    "write_metadata",
    # Normalization
    "apply_delta",
    "measure_delta",
    "normalize",
    # Worker pipeline
    "PostProcessor",
]
