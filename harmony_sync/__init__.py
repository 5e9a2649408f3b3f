"""
harmony-sync: Transfer playlists between Spotify and YouTube Music.

Catalogs share no track identifiers, so every track of a source playlist
is re-identified in the target catalog from free text (title, artist,
album, duration) before the destination playlist is built.

Architecture:
    matching/   - Track identity resolution
        - Normalize titles and artists (feat. credits, remaster tags, ...)
        - Score search candidates on name, artist, album and duration
        - Pick the best candidate deterministically, or none
        - Drive catalog searches with fallback strategies

    sync/       - Batched synchronization
        - Rate-limited concurrent chunks (run_batches)
        - Cursor pagination (fetch_all_pages)
        - Per-session playlist cache with loading progress
        - Playlist transfer with a structured report

    catalogs/   - Spotify (spotipy) and YouTube Music (ytmusicapi) adapters
    core/       - Configuration, SQLite store, logging, progress, exceptions
    utils/      - URL and duration helpers
    cli.py      - Command-line interface

Usage:
    Command Line:
        harmony --playlist "https://open.spotify.com/playlist/..." --target ytmusic
        harmony --library
        harmony --resolve "Queen - Bohemian Rhapsody" --target ytmusic

    Python API:
        from harmony_sync import TrackQuery, TrackResolver
        from harmony_sync.catalogs.ytmusic import YouTubeMusicCatalog

        resolver = TrackResolver(YouTubeMusicCatalog())
        video_id = resolver.resolve_track(TrackQuery(name="Bohemian Rhapsody", artist="Queen"))

Dependencies:
    - spotipy: Spotify API client
    - ytmusicapi: YouTube Music API client
    - rapidfuzz: Edit distance for title similarity
    - rich / rich-click: Progress bars and CLI colors
    - tqdm: Log output that cooperates with progress bars
    - pyyaml: Configuration file parsing
    - requests: Transport errors raised by spotipy
"""

__version__ = "0.1.0"
__author__ = "harmony-sync"
__license__ = "MIT"

from harmony_sync.core import (
    CatalogError,
    ConfigError,
    DatabaseError,
    HarmonyError,
    ValidationError,
    get_logger,
    setup_logging,
)
from harmony_sync.matching import MatchResult, TrackQuery, TrackResolver
from harmony_sync.sync import (
    PlaylistSynchronizer,
    ResolutionCache,
    SyncReport,
    load_source_playlist,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "setup_logging",
    "get_logger",
    # Exceptions
    "HarmonyError",
    "ConfigError",
    "DatabaseError",
    "ValidationError",
    "CatalogError",
    # Matching
    "TrackQuery",
    "MatchResult",
    "TrackResolver",
    # Sync
    "ResolutionCache",
    "PlaylistSynchronizer",
    "SyncReport",
    "load_source_playlist",
]
