"""
Command-line interface for harmony-sync.

This module implements the CLI using Click, with rich-click for the
output colors.

Commands:
    harmony --playlist <url|id>                 Transfer one playlist
    harmony --playlist <url> --source ytmusic --target spotify
    harmony --library                           Load all your Spotify playlists
    harmony --resolve "Artist - Title"          Resolve one track in the target

Options:
    --source / --target     spotify | ytmusic (default: spotify -> ytmusic)
    --config <path>         config.yaml to use (default: ./config.yaml)
    --verbose               Print DEBUG messages on the console

Usage:
    # Copy a Spotify playlist to YouTube Music
    harmony --playlist "https://open.spotify.com/playlist/..."

    # Copy a YouTube Music playlist to Spotify
    harmony --playlist "https://music.youtube.com/playlist?list=..." --source ytmusic --target spotify

    # Load (and store in playlists.db) every playlist of your Spotify library
    harmony --library

    # Check how a single track resolves
    harmony --resolve "Queen - Bohemian Rhapsody" --target ytmusic

Configuration:
    The CLI requires a config.yaml file (see config.example.yaml) with:
    - The output directory (logs and playlists.db)
    - Spotify API credentials, whenever Spotify is involved
    - A ytmusicapi auth file to create YouTube Music playlists

Exit Codes:
    0   Success
    1   Configuration, catalog, database or unexpected error
    130 Interrupted by user
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Actions",
            "options": ["--playlist", "--library", "--resolve"],
        },
        {
            "name": "Catalogs",
            "options": ["--source", "--target"],
        },
        {
            "name": "Advanced Options",
            "options": ["--config", "--verbose"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from harmony_sync import __version__
from harmony_sync.catalogs.spotify import SpotifyCatalog
from harmony_sync.catalogs.ytmusic import YouTubeMusicCatalog
from harmony_sync.core import (
    CatalogError,
    ConfigError,
    HarmonyError,
    get_logger,
    log_match_failure,
    setup_logging,
    shutdown_logging,
)
from harmony_sync.core.config import Config, load_config
from harmony_sync.core.database import PlaylistStore
from harmony_sync.core.logger import format_matched_message
from harmony_sync.core.progress import LoadingProgressBar, MatchingProgressBar
from harmony_sync.matching import TrackQuery, TrackResolver
from harmony_sync.sync import (
    CacheStatus,
    PlaylistSynchronizer,
    ResolutionCache,
    SyncReport,
    load_source_playlist,
)
from harmony_sync.utils import ensure_directory, extract_playlist_id, format_duration

logger = get_logger(__name__)


CATALOG_NAMES = ("spotify", "ytmusic")

# Seconds between progress polls while the library loads
LIBRARY_POLL_INTERVAL = 0.2


@click.command()
@click.option(
    "--playlist",
    type=str,
    default=None,
    metavar="<url-or-id>",
    help="Playlist to transfer from --source to --target"
)
@click.option(
    "--library",
    is_flag=True,
    help="Load every playlist of your Spotify library"
)
@click.option(
    "--resolve",
    type=str,
    default=None,
    metavar="<\"Artist - Title\">",
    help="Resolve a single track in the --target catalog"
)
@click.option(
    "--source",
    type=click.Choice(CATALOG_NAMES),
    default="spotify",
    show_default=True,
    help="Catalog the playlist comes from"
)
@click.option(
    "--target",
    type=click.Choice(CATALOG_NAMES),
    default="ytmusic",
    show_default=True,
    help="Catalog the playlist is copied to"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show DEBUG messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    playlist: Optional[str],
    library: bool,
    resolve: Optional[str],
    source: str,
    target: str,
    config_path: Optional[Path],
    verbose: bool,
    version: bool
) -> None:
    """
    harmony-sync: Transfer playlists between Spotify and YouTube Music.

    Every track of the source playlist is searched in the target catalog
    and matched on title, artist, album and duration before the new
    playlist is created.

    \b
    TRANSFER:
        harmony --playlist "https://open.spotify.com/playlist/..."
        harmony --playlist "https://music.youtube.com/playlist?list=..." --source ytmusic --target spotify

    \b
    LIBRARY:
        harmony --library                      # Load and store all your Spotify playlists

    \b
    SINGLE TRACK:
        harmony --resolve "Queen - Bohemian Rhapsody" --target ytmusic
    """
    if version:
        click.echo(f"harmony-sync {__version__}")
        ctx.exit(0)

    actions = [playlist is not None, library, resolve is not None]
    if not any(actions):
        click.echo(ctx.get_help())
        ctx.exit(0)

    if sum(actions) > 1:
        raise click.UsageError("Use only one of --playlist, --library and --resolve")

    options: dict = {"config_path": config_path, "verbose": verbose}

    if playlist is not None:
        if source == target:
            raise click.UsageError("--source and --target must be different catalogs")
        try:
            options["playlist_id"] = extract_playlist_id(playlist)
        except ValueError as e:
            raise click.UsageError(f"--playlist: {e}")
        options.update(action="transfer", source=source, target=target)

    elif library:
        options.update(action="library")

    else:
        artist, separator, title = resolve.partition(" - ")
        if not separator or not artist.strip() or not title.strip():
            raise click.UsageError('--resolve expects "Artist - Title"')
        options.update(action="resolve", artist=artist.strip(), title=title.strip(), target=target)

    _run(options)


def _run(options: dict) -> None:
    """
    Load configuration, set up logging and run the selected action.

    Every HarmonyError is fatal and exits with status 1.
    """
    try:
        config = load_config(options["config_path"])

        ensure_directory(config.output.directory)
        setup_logging(
            config.output.directory,
            console_level=logging.DEBUG if options["verbose"] else logging.INFO
        )
        logger.info(f"harmony-sync {__version__} starting")

        action = options["action"]
        if action == "transfer":
            _run_transfer(config, options["playlist_id"], options["source"], options["target"])
        elif action == "library":
            _run_library(config)
        else:
            _run_resolve(config, options["artist"], options["title"], options["target"])

        logger.info("harmony-sync completed successfully")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except CatalogError as e:
        click.echo(f"Catalog error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your credentials in config.yaml", err=True)
        logger.error(f"Catalog error: {e.message}", exc_info=True)
        sys.exit(1)

    except HarmonyError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

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


def _build_catalog(name: str, config: Config) -> SpotifyCatalog | YouTubeMusicCatalog:
    """
    Create (and connect) the adapter for a catalog name.

    Raises:
        ConfigError: If Spotify is requested without a spotify section.
        CatalogError: If authentication fails.
    """
    if name == "spotify":
        if config.spotify is None:
            raise ConfigError(
                "Missing required section: 'spotify'",
                details={"missing_section": "spotify"}
            )
        return SpotifyCatalog(
            client_id=config.spotify.client_id,
            client_secret=config.spotify.client_secret,
            user_auth=config.spotify.user_auth,
            redirect_uri=config.spotify.redirect_uri
        ).connect()

    return YouTubeMusicCatalog(
        auth_file=config.ytmusic.auth_file,
        language=config.ytmusic.language
    )


def _build_resolver(catalog, config: Config) -> TrackResolver:
    return TrackResolver(
        catalog,
        weights=config.matching.weights,
        thresholds=config.matching.thresholds
    )


def _run_transfer(config: Config, playlist_id: str, source: str, target: str) -> None:
    """Copy one playlist from the source catalog to the target catalog."""
    logger.info("=" * 60)
    logger.info(f"Transferring playlist {playlist_id}: {source} -> {target}")
    logger.info("=" * 60)

    source_catalog = _build_catalog(source, config)
    target_catalog = _build_catalog(target, config)

    store = PlaylistStore(config.output.database_path)
    try:
        cache = ResolutionCache(source_catalog, sink=store, page_delay=config.sync.page_delay)
        source_playlist = load_source_playlist(cache, playlist_id)
        logger.info(
            f"Source: '{source_playlist.metadata.name}' by {source_playlist.metadata.owner or 'unknown'} "
            f"({len(source_playlist.tracks)} tracks)"
        )

        synchronizer = PlaylistSynchronizer(_build_resolver(target_catalog, config), config.sync)
        with MatchingProgressBar(total=len(source_playlist.tracks)) as progress_bar:
            report = synchronizer.sync_playlist(
                source_playlist,
                create_playlist=target_catalog.create_playlist,
                add_tracks=target_catalog.add_tracks_to_playlist,
                progress_bar=progress_bar
            )
    finally:
        store.close()

    _print_sync_report(report)


def _run_library(config: Config) -> None:
    """Load every playlist of the user's Spotify library into playlists.db."""
    logger.info("=" * 60)
    logger.info("Loading Spotify library")
    logger.info("=" * 60)

    catalog = _build_catalog("spotify", config)
    playlists = catalog.list_user_playlists(page_delay=config.sync.page_delay)
    if not playlists:
        logger.info("No playlists found in your library")
        return

    logger.info(f"Found {len(playlists)} playlists")

    store = PlaylistStore(config.output.database_path)
    try:
        cache = ResolutionCache(catalog, sink=store, page_delay=config.sync.page_delay)
        cache.begin_library_load(len(playlists))

        with LoadingProgressBar(total=len(playlists)) as progress_bar:
            thread = cache.start_background_load(
                [playlist.remote_id for playlist in playlists],
                on_entry=lambda entry: progress_bar.update(entry.status)
            )
            if thread is not None:
                while thread.is_alive():
                    thread.join(LIBRARY_POLL_INTERVAL)
            progress_bar.sync_with(cache.get_loading_progress())

        entries = cache.entries()
        loaded = [entry for entry in entries if entry.status is CacheStatus.LOADED]
        not_found = sum(1 for entry in entries if entry.status is CacheStatus.NOT_FOUND)
        errored = sum(1 for entry in entries if entry.status is CacheStatus.ERRORED)
        total_ms = sum(entry.total_duration_ms for entry in loaded)

        logger.info("=" * 60)
        logger.info("LIBRARY")
        logger.info("=" * 60)
        logger.info(f"Loaded:            {len(loaded)}")
        logger.info(f"Not found:         {not_found}")
        logger.info(f"Errors:            {errored}")
        logger.info(f"Tracks:            {sum(entry.track_count for entry in loaded)}")
        logger.info(f"Total duration:    {format_duration(total_ms // 1000)}")
        logger.info(f"Stored playlists:  {len(store.get_all_playlists())}")
        logger.info("=" * 60)
    finally:
        store.close()


def _run_resolve(config: Config, artist: str, title: str, target: str) -> None:
    """Resolve one track and print the decision."""
    catalog = _build_catalog(target, config)
    query = TrackQuery(name=title, artist=artist)

    result = _build_resolver(catalog, config).resolve(query)
    if result is None:
        log_match_failure(logger, title, artist, "no acceptable candidate")
        return

    logger.info(format_matched_message(artist, title, result.remote_id, result.score))
    if result.candidate is not None:
        logger.info(
            f"Matched:           {result.candidate.artist} - {result.candidate.name}"
            + (f" [{result.candidate.album}]" if result.candidate.album else "")
        )
    for factor, value in result.scores.items():
        logger.debug(f"  {factor:<16} {value:.3f}")


def _print_sync_report(report: SyncReport) -> None:
    logger.info("=" * 60)
    logger.info("TRANSFER REPORT")
    logger.info("=" * 60)
    logger.info(f"Destination:       {report.destination_playlist_id}")
    logger.info(f"Total tracks:      {report.total_tracks}")
    logger.info(f"Transferred:       {report.tracks_added}")
    logger.info(f"Failed:            {report.failed_count}")
    for song in report.failed_songs:
        logger.info(f"  - {song.display_name}" + (f" [{song.album}]" if song.album else ""))
    logger.info("=" * 60)


def main() -> None:
    """Entry point for the `harmony` console script."""
    cli()


if __name__ == "__main__":
    main()
