"""
Exception classes for spot-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, and the class itself tells the caller how far the failure is
allowed to propagate.

Exception Hierarchy:
    SpotSyncError (base)
        ConfigError - Configuration file issues (fatal)
        FolderError - Sync folder missing or unusable (fatal)
        SpotifyError - Spotify API issues (fatal at session level)
        TrackRecordError - Malformed remote track (surfaced to caller)
        SearchError - No acceptable YouTube candidate (track-scoped)
        DownloadError - Audio fetch issues (track-scoped)
        MetadataError - ID3 tag write issues (logged, non-fatal)
        NormalizationError - ffmpeg issues (falls back, non-fatal)

Propagation:
    Track-scoped errors are caught by the sync orchestrator and recorded
    in the session's failed list. Only the fatal ones reach the CLI, where
    they are mapped to an exit code before any track is processed.
"""


class SpotSyncError(Exception):
    """
    Base exception for all spot-sync errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all spot-sync errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., track name, URLs).

    Example:
        try:
            # some operation
        except SpotSyncError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'track': Display name of the track involved
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotSyncError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (client_id, client_secret)
        - Invalid field values (e.g., zero workers, extension without dot)

    Example:
        raise ConfigError(
            "Missing required field 'client_id' in config.yaml",
            details={'file_path': '/path/to/config.yaml', 'missing_field': 'client_id'}
        )
    """
    pass


class FolderError(SpotSyncError):
    """
    Raised when the folder to synchronize does not exist.

    This is a CRITICAL error detected during pre-flight, before the
    Spotify catalog is even queried.
    """
    pass


class SpotifyError(SpotSyncError):
    """
    Raised when there's an issue with the Spotify API.

    Within a sync run every Spotify call happens during pre-flight
    (authentication and fetching the track list), so this error is
    always CRITICAL for the session.

    Common causes:
        - Invalid or expired credentials
        - Rate limiting
        - Playlist not found or private
        - Network connectivity issues

    Attributes:
        is_auth_error: True if this is an authentication error.
        is_rate_limit: True if this is a rate limit error.

    Example:
        raise SpotifyError(
            "Failed to fetch playlist: playlist is private",
            details={'playlist': uri, 'status_code': 403}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if this is a rate limit error.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class TrackRecordError(SpotSyncError):
    """
    Raised when a remote track cannot be turned into a TrackRecord.

    A track without a title or without any credited artist has no
    usable filesystem identity. The error is surfaced to the caller
    immediately and is never retried.

    Example:
        raise TrackRecordError(
            "Track has no credited artist",
            details={'spotify_id': '4uLU6hMCjMI75M1A2tKUQC'}
        )
    """
    pass


class SearchError(SpotSyncError):
    """
    Raised when no acceptable YouTube candidate is found for a track.

    This is a NON-CRITICAL error: the track is added to the session's
    failed list and the batch moves on to the next track.

    Common causes:
        - Every search result was rejected by the matcher
        - YouTube Music search kept failing after all retries
        - Interactive mode and the user declined every candidate
    """
    pass


class DownloadError(SpotSyncError):
    """
    Raised when audio fetching fails.

    This is a NON-CRITICAL error: the track is added to the session's
    failed list and the batch continues. Partial artifacts (.part, .ytdl)
    are left for the interrupt cleanup or for the next run to overwrite.

    Common causes:
        - Video unavailable (removed, private, region-locked)
        - Age-restricted content without cookies
        - Network errors during download
        - FFmpeg conversion failure

    Attributes:
        is_retryable: True when the error class is worth retrying.

    Example:
        raise DownloadError(
            "Video unavailable: This video has been removed",
            details={'url': 'https://music.youtube.com/watch?v=xxx'}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_retryable: bool = False
    ) -> None:
        super().__init__(message, details)
        self.is_retryable = is_retryable


class MetadataError(SpotSyncError):
    """
    Raised when writing ID3 tags fails.

    This is a NON-CRITICAL error: it is logged and the track still
    commits, because metadata is best-effort.

    Common causes:
        - File is not a valid MP3 container
        - File locked by another process
        - Disk full
    """
    pass


class NormalizationError(SpotSyncError):
    """
    Raised when ffmpeg cannot measure or apply a volume change.

    Never blocks a commit: a failed measurement falls back to a zero
    delta, and a failed application leaves the pre-normalization file
    in place.
    """
    pass
