"""
Post-processing for spot-sync.

Runs on a worker thread once a track's audio sits under its temporary
name. Each step is best-effort: a failure is logged and the track still
commits.

Steps:
    1. Artwork: download the album cover to a scratch file
    2. Metadata: write ID3 tags (fresh tracks, or --flush-metadata)
    3. Normalization: level the loudness (fresh tracks only, unless
       --disable-normalization)

The artwork scratch file is always removed when processing ends.

Usage:
    from spot_sync.download.postprocess import PostProcessor

    processor = PostProcessor(options)
    processor.process(record, fresh=True)
"""

import os
from pathlib import Path
from typing import Callable

from spot_sync.core.config import SyncOptions
from spot_sync.core.exceptions import MetadataError
from spot_sync.core.logger import get_logger
from spot_sync.download.metadata import download_artwork, write_metadata
from spot_sync.download.normalizer import normalize
from spot_sync.spotify.models import TrackRecord

logger = get_logger(__name__)


class PostProcessor:
    """
    Tags and normalizes a track's temporary file.

    Attributes:
        _options: Run-time switches (flush_metadata, disable_normalization).
        _metadata_writer: write_metadata-compatible callable.
        _normalizer: normalize-compatible callable (path, output).
        _artwork_fetcher: download_artwork-compatible callable (url, path).

    Thread Safety:
        process() only touches the files of the record it is given, so one
        instance can serve every worker.
    """

    def __init__(
        self,
        options: SyncOptions,
        metadata_writer: Callable[..., None] = write_metadata,
        normalizer: Callable[[str, str], bool] = normalize,
        artwork_fetcher: Callable[[str, str], bytes | None] = download_artwork
    ) -> None:
        self._options = options
        self._metadata_writer = metadata_writer
        self._normalizer = normalizer
        self._artwork_fetcher = artwork_fetcher

    def process(self, record: TrackRecord, fresh: bool) -> None:
        """
        Post-process record.filename_temporary in place.

        Args:
            record: Track whose temporary file is ready.
            fresh: True when the audio was just fetched, False when an
                   existing local file is only having its tags flushed.
        """
        path = record.filename_temporary
        artwork_path = record.filename_artwork

        self._remove_artwork(artwork_path)
        try:
            if fresh or self._options.flush_metadata:
                artwork = self._artwork_fetcher(record.artwork_url, artwork_path)
                try:
                    self._metadata_writer(
                        path,
                        record.title,
                        record.artist,
                        record.album,
                        artwork,
                        record.source_locator
                    )
                except MetadataError as e:
                    logger.warning(f"Metadata not written for \"{record.display_name}\": {e}")

            if fresh and not self._options.disable_normalization:
                self._normalizer(path, record.filename_normalized)
        finally:
            self._remove_artwork(artwork_path)

    @staticmethod
    def _remove_artwork(artwork_path: str) -> None:
        if os.path.exists(artwork_path):
            try:
                os.remove(artwork_path)
            except OSError as e:
                logger.debug(f"Could not remove {Path(artwork_path).name}: {e}")
