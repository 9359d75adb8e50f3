"""
Configuration for spot-sync.

Two sources feed a run:

    config.yaml    credentials and folder-independent settings, read from
                   the directory spot-sync is started in (or --config)
    command line   per-run switches, collected in SyncOptions

config.yaml layout:

    spotify:
      client_id: "..."        # required
      client_secret: "..."    # required

    sync:                     # optional section
      extension: ".mp3"       # container of synchronized files (MP3 only)
      workers: 4              # concurrent post-processing tasks
      cookie_file: null       # cookies.txt for yt-dlp (age-restricted,
                              # YouTube Premium quality)

Everything is validated up front; a bad file raises ConfigError before
any track is looked at.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from spot_sync.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"

DEFAULT_EXTENSION = ".mp3"
# Containers write_metadata and read_source_locator can tag (ID3)
SUPPORTED_EXTENSIONS = (".mp3",)
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application credentials, from
    https://developer.spotify.com/dashboard
    """
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class SyncConfig:
    """
    The optional sync section.

    Attributes:
        extension: Container extension with its dot, lowercased. One of
                   SUPPORTED_EXTENSIONS.
        workers: Upper bound on concurrent post-processing tasks.
        cookie_file: Resolved path of a browser-exported cookies.txt.
    """
    extension: str = DEFAULT_EXTENSION
    workers: int = DEFAULT_WORKERS
    cookie_file: Path | None = None


@dataclass(frozen=True)
class Config:
    spotify: SpotifyConfig
    sync: SyncConfig


@dataclass(frozen=True)
class SyncOptions:
    """
    Switches of one synchronization run, straight from the command line.

    Attributes:
        replace_local: Search local tracks again; replace them when the
                       best result has changed.
        flush_metadata: Rewrite the tags of local tracks.
        disable_normalization: Keep fetched audio at its original loudness.
        interactive: Ask before accepting each candidate.
        debug: Finish each track's post-processing before the next one.
        simulate: Report what would be fetched; change nothing on disk.
    """
    replace_local: bool = False
    flush_metadata: bool = False
    disable_normalization: bool = False
    interactive: bool = False
    debug: bool = False
    simulate: bool = False


def load_config(config_path: Path | None = None) -> Config:
    """
    Read and validate config.yaml.

    Args:
        config_path: File to read. Defaults to ./config.yaml.

    Returns:
        The validated, frozen Config.

    Raises:
        ConfigError: Missing or unreadable file, YAML syntax error, missing
                     spotify section, or an invalid value. details carries
                     the file or field involved.
    """
    path = config_path if config_path is not None else Path.cwd() / CONFIG_FILENAME
    raw = _read_yaml(path)

    if "spotify" not in raw:
        raise ConfigError(
            "Missing required section: 'spotify'",
            details={"missing_section": "spotify"}
        )

    return Config(
        spotify=_parse_spotify_config(_section(raw, "spotify")),
        sync=_parse_sync_config(_section(raw, "sync")),
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(
            f"Configuration file not found: {path}",
            details={"file_path": str(path)}
        )

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(
            f"Cannot read configuration file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in configuration file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e

    if not isinstance(raw, dict):
        raise ConfigError(
            "Configuration file must hold a YAML mapping",
            details={"file_path": str(path)}
        )
    return raw


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a top-level section, {} when absent or null."""
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(
            f"Section '{name}' must be a mapping",
            details={"section": name}
        )
    return value


def _required_string(section: dict[str, Any], key: str, field: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return value.strip()


def _parse_spotify_config(section: dict[str, Any]) -> SpotifyConfig:
    return SpotifyConfig(
        client_id=_required_string(section, "client_id", "spotify.client_id"),
        client_secret=_required_string(section, "client_secret", "spotify.client_secret"),
    )


def _parse_sync_config(section: dict[str, Any]) -> SyncConfig:
    """
    Validate the sync section, filling in defaults for absent keys.

    Raises:
        ConfigError: extension without a leading dot or outside
                     SUPPORTED_EXTENSIONS, workers that is not a positive
                     integer, or a cookie_file that does not exist.
    """
    extension = section.get("extension", DEFAULT_EXTENSION)
    if not isinstance(extension, str) or len(extension) < 2 or not extension.startswith("."):
        raise ConfigError(
            "'sync.extension' must look like '.mp3'",
            details={"field": "sync.extension", "value": extension}
        )
    if extension.lower() not in SUPPORTED_EXTENSIONS:
        raise ConfigError(
            f"Unsupported sync.extension '{extension}': only MP3 files can be tagged",
            details={"field": "sync.extension", "value": extension}
        )

    workers = section.get("workers", DEFAULT_WORKERS)
    # bool is an int subclass
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigError(
            "'sync.workers' must be a positive integer",
            details={"field": "sync.workers", "value": workers}
        )

    cookie_file = None
    raw_cookie = section.get("cookie_file")
    if raw_cookie is not None:
        if not isinstance(raw_cookie, str):
            raise ConfigError(
                "'sync.cookie_file' must be a path or null",
                details={"field": "sync.cookie_file"}
            )
        cookie_file = Path(raw_cookie).expanduser().resolve()
        if not cookie_file.exists():
            raise ConfigError(
                f"Cookie file not found: {cookie_file}",
                details={"field": "sync.cookie_file", "path": str(cookie_file)}
            )

    return SyncConfig(
        extension=extension.lower(),
        workers=workers,
        cookie_file=cookie_file
    )
