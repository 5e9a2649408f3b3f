"""
Batched synchronization.

    - batch: run_batches() and fetch_all_pages()
    - cache: ResolutionCache, the per-session playlist cache with loading
      progress
    - synchronizer: PlaylistSynchronizer, playlist transfer between catalogs

Usage:
    from harmony_sync.sync import PlaylistSynchronizer, ResolutionCache, load_source_playlist

    cache = ResolutionCache(source_catalog, sink=store)
    source = load_source_playlist(cache, playlist_id)
    report = PlaylistSynchronizer(resolver).sync_playlist(
        source, target.create_playlist, target.add_tracks_to_playlist
    )
"""

from harmony_sync.sync.batch import (
    BatchReport,
    TaskOutcome,
    chunked,
    fetch_all_pages,
    run_batches,
)
from harmony_sync.sync.cache import (
    CacheStatus,
    LoadingProgress,
    LoadState,
    ResolutionCache,
    ResolutionCacheEntry,
    TrackRecord,
)
from harmony_sync.sync.synchronizer import (
    PlaylistSynchronizer,
    SourcePlaylist,
    SyncReport,
    load_source_playlist,
)

__all__ = [
    # Batch
    "TaskOutcome",
    "BatchReport",
    "chunked",
    "run_batches",
    "fetch_all_pages",
    # Cache
    "CacheStatus",
    "LoadState",
    "LoadingProgress",
    "TrackRecord",
    "ResolutionCacheEntry",
    "ResolutionCache",
    # Synchronizer
    "SourcePlaylist",
    "SyncReport",
    "PlaylistSynchronizer",
    "load_source_playlist",
]
