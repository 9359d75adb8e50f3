"""
Command-line interface for spot-sync.

This module implements the CLI using Click, with rich-click for the
help colors and option groups.

Usage:
    # Synchronize the saved library into the current directory
    spot-sync

    # Synchronize a playlist into a music folder
    spot-sync --folder ~/Music --playlist "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"

    # Look for better versions of the tracks already in the folder
    spot-sync --folder ~/Music --replace-local

    # Rewrite the tags of every local track
    spot-sync --folder ~/Music --flush-metadata

    # Show what would be downloaded, without touching the folder
    spot-sync --folder ~/Music --simulate

Configuration:
    The CLI reads config.yaml from the directory it is started in (or the
    path given with --config), before moving into --folder:
    - Spotify API credentials (client_id, client_secret)
    - Optional audio extension, worker count and cookie file

Exit Codes:
    0   Run completed (possibly with failed tracks, which are listed)
    1   Configuration error, or an unexpected error
    2   Music folder does not exist
    3   Spotify authentication or API error
    4   Any other spot-sync error
    130 Interrupted by the user
"""

import os
import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
_OPTION_GROUPS = [
    {
        "name": "Source and Destination",
        "options": ["--folder", "--playlist", "--config"],
    },
    {
        "name": "Sync Options",
        "options": [
            "--replace-local",
            "--flush-metadata",
            "--disable-normalization",
            "--interactive",
            "--simulate",
        ],
    },
    {
        "name": "Diagnostics",
        "options": ["--log", "--debug"],
    },
    {
        "name": "Info",
        "options": ["--version", "--help"],
    },
]
click.rich_click.OPTION_GROUPS = {
    "cli": _OPTION_GROUPS,
    "spot-sync": _OPTION_GROUPS,
}

from spot_sync import __version__
from spot_sync.core import (
    Config,
    ConfigError,
    FolderError,
    SpotifyError,
    SpotSyncError,
    SyncOptions,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_sync.spotify import SpotifyClient, fetch_track_records
from spot_sync.sync import (
    InterruptHandler,
    SyncReport,
    SyncSession,
    build_orchestrator,
    log_report,
)

logger = get_logger(__name__)


@click.command()
@click.option(
    "--folder",
    type=str,
    default=".",
    show_default=True,
    metavar="<path>",
    help="Music folder to synchronize"
)
@click.option(
    "--playlist",
    type=str,
    default=None,
    metavar="<spotify-uri>",
    help="Playlist URI, URL or ID (default: your saved library)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--replace-local",
    is_flag=True,
    help="Search again for tracks already in the folder and replace them"
)
@click.option(
    "--flush-metadata",
    is_flag=True,
    help="Rewrite the tags of tracks already in the folder"
)
@click.option(
    "--disable-normalization",
    is_flag=True,
    help="Do not level the loudness of new tracks"
)
@click.option(
    "--interactive",
    is_flag=True,
    help="Confirm every YouTube match before downloading"
)
@click.option(
    "--simulate",
    is_flag=True,
    help="Only show what would be downloaded"
)
@click.option(
    "--log",
    "log_to_file",
    is_flag=True,
    help="Write log files into <folder>/logs"
)
@click.option(
    "--debug",
    is_flag=True,
    help="Verbose output, post-process one track at a time"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    folder: str,
    playlist: Optional[str],
    config_path: Optional[Path],
    replace_local: bool,
    flush_metadata: bool,
    disable_normalization: bool,
    interactive: bool,
    simulate: bool,
    log_to_file: bool,
    debug: bool,
    version: bool
) -> None:
    """
    spot-sync: Keep a local music folder in sync with Spotify.

    For every Spotify track missing from the folder, finds the best
    YouTube Music match, downloads it as MP3 and writes its metadata.

    \b
    BASIC USAGE:
        spot-sync --folder ~/Music                         # Saved library
        spot-sync --folder ~/Music --playlist "spotify:playlist:..."

    \b
    MAINTENANCE:
        spot-sync --replace-local      # Look for better matches of local tracks
        spot-sync --flush-metadata     # Rewrite tags of local tracks
    """
    if version:
        click.echo(f"spot-sync {__version__}")
        ctx.exit(0)

    options = SyncOptions(
        replace_local=replace_local,
        flush_metadata=flush_metadata,
        disable_normalization=disable_normalization,
        interactive=interactive,
        debug=debug,
        simulate=simulate
    )

    _run_sync(folder, playlist, config_path, options, log_to_file)


def _run_sync(
    folder: str,
    playlist: str | None,
    config_path: Path | None,
    options: SyncOptions,
    log_to_file: bool
) -> None:
    """
    Execute the synchronization workflow.

    This is the main orchestration function that:
    1. Loads configuration (from the starting directory)
    2. Moves into the music folder
    3. Sets up logging
    4. Initializes the Spotify client and fetches the tracks
    5. Runs the sync with the interrupt handler installed
    6. Reports results

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = _load_configuration(config_path)

        _enter_folder(folder)

        logs_dir = setup_logging(Path.cwd(), log_to_file, options.debug)
        logger.info(f"Synchronization folder: {folder}")
        if logs_dir is not None:
            logger.debug(f"Writing log files to {logs_dir}")

        _initialize_spotify(config)

        logger.info("Checking which songs need to be downloaded.")
        records = fetch_track_records(playlist, config.sync.extension, Path.cwd())

        session = SyncSession(records, options)
        report = _synchronize(session, config)

        log_report(report)
        _print_final_stats(report)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except FolderError as e:
        click.echo(f"Folder error: {e.message}", err=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your client_id and client_secret in config.yaml", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except SpotSyncError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _load_configuration(config_path: Path | None) -> Config:
    """
    Load and validate configuration.

    Raises:
        ConfigError: If configuration is invalid or missing.
    """
    return load_config(config_path)


def _enter_folder(folder: str) -> None:
    """
    Make the music folder the working directory.

    Raises:
        FolderError: If the folder does not exist or cannot be entered.
    """
    path = Path(folder).expanduser()
    if not path.is_dir():
        raise FolderError(
            f"Chosen music folder does not exist: {folder}",
            details={"folder": folder}
        )
    try:
        os.chdir(path)
    except OSError as e:
        raise FolderError(
            f"Cannot enter music folder {folder}: {e}",
            details={"folder": folder, "original_error": str(e)}
        ) from e


def _initialize_spotify(config: Config) -> None:
    """
    Initialize the Spotify client singleton.

    User authentication is always requested: the saved library and
    private playlists need it.

    Raises:
        SpotifyError: If authentication fails.
    """
    SpotifyClient.init(
        client_id=config.spotify.client_id,
        client_secret=config.spotify.client_secret,
        user_auth=True
    )


def _synchronize(session: SyncSession, config: Config) -> SyncReport:
    """Run the orchestrator with Ctrl+C cleanup in place."""
    handler = InterruptHandler(session)
    handler.install()
    try:
        return build_orchestrator(session, config).run()
    finally:
        handler.uninstall()


def _print_final_stats(report: SyncReport) -> None:
    """Print the run counters."""
    if report.total == 0:
        return

    logger.debug("=" * 60)
    logger.debug("SYNC SUMMARY")
    logger.debug("=" * 60)
    logger.debug(f"Total tracks:   {report.total}")
    logger.debug(f"Downloaded:     {report.fetched}")
    logger.debug(f"Committed:      {report.committed}")
    logger.debug(f"Skipped:        {report.skipped}")
    logger.debug(f"Failed:         {len(report.failed_names)}")
    logger.debug("=" * 60)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot-sync` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
