"""
Resolution cache and library-load progress tracking.

ResolutionCache memoizes the details of remote playlists (metadata plus
every track) keyed by playlist id. Each id is written exactly once:

    LOADED      metadata and tracks fetched successfully
    NOT_FOUND   the catalog reported the playlist as absent
    ERRORED     something else failed; the error text is kept

NOT_FOUND and ERRORED entries form a negative cache. They are returned
as-is on later requests and never re-fetched automatically, so a broken
playlist cannot cause a retry storm.

Library Loading:
    begin_library_load(total) resets the progress counters, then
    load_details_in_background(ids) walks the ids. Every id advances the
    progress by exactly one, whatever its outcome. Only one load can run
    at a time: the load state is a two-state machine (IDLE/LOADING)
    switched with a compare-and-set under a lock, and a call that finds
    LOADING returns False immediately.

Persistence:
    LOADED entries are handed to an optional PersistenceSink (the SQLite
    PlaylistStore in the CLI). A sink failure is logged and otherwise
    ignored: the playlist stays resolved in memory.

Usage:
    cache = ResolutionCache(catalog, sink=store)
    cache.begin_library_load(len(ids))
    cache.start_background_load(ids)
    while not cache.get_loading_progress().is_complete:
        ...
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

from harmony_sync.catalogs.base import PlaylistMetadata
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger
from harmony_sync.matching.models import Candidate
from harmony_sync.sync.batch import DEFAULT_PAGE_DELAY, fetch_all_pages

if TYPE_CHECKING:
    from harmony_sync.catalogs.base import CatalogClient, PersistenceSink


logger = get_logger(__name__)


class CacheStatus(Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    ERRORED = "errored"


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"


@dataclass(frozen=True)
class TrackRecord:
    """
    One track of a resolved playlist.

    Attributes:
        remote_id: Track id in the playlist's catalog.
        name: Track title.
        artist: Artist credit.
        album: Album name ("" when unknown).
        duration_ms: Duration in milliseconds, None when unknown.
    """

    remote_id: str
    name: str
    artist: str
    album: str
    duration_ms: int | None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "TrackRecord":
        return cls(
            remote_id=candidate.remote_id,
            name=candidate.name,
            artist=candidate.artist,
            album=candidate.album or "",
            duration_ms=candidate.duration_ms,
        )


@dataclass(frozen=True)
class ResolutionCacheEntry:
    """
    Cached outcome of resolving one playlist.

    Attributes:
        remote_id: Playlist id as requested (the cache key).
        status: LOADED, NOT_FOUND or ERRORED.
        tracks: Track records keyed by track id, in playlist order.
        track_count: Number of playlist items fetched (duplicates included).
        total_duration_ms: Sum of known track durations.
        metadata: Playlist header (LOADED entries only).
        error: Error text (ERRORED entries only).
    """

    remote_id: str
    status: CacheStatus
    tracks: dict[str, TrackRecord] = field(default_factory=dict)
    track_count: int = 0
    total_duration_ms: int = 0
    metadata: PlaylistMetadata | None = None
    error: str | None = None

    @classmethod
    def loaded(
        cls,
        metadata: PlaylistMetadata,
        items: list[Candidate],
        remote_id: str | None = None
    ) -> "ResolutionCacheEntry":
        """Build a LOADED entry keyed by remote_id (the requested id), else the metadata id."""
        records = {}
        for item in items:
            if item.remote_id and item.remote_id not in records:
                records[item.remote_id] = TrackRecord.from_candidate(item)
        return cls(
            remote_id=remote_id or metadata.remote_id,
            status=CacheStatus.LOADED,
            tracks=records,
            track_count=len(items),
            total_duration_ms=sum(item.duration_ms or 0 for item in items),
            metadata=metadata,
        )

    @classmethod
    def not_found(cls, remote_id: str) -> "ResolutionCacheEntry":
        return cls(remote_id=remote_id, status=CacheStatus.NOT_FOUND)

    @classmethod
    def errored(cls, remote_id: str, error: str) -> "ResolutionCacheEntry":
        return cls(remote_id=remote_id, status=CacheStatus.ERRORED, error=error)

    @property
    def is_loaded(self) -> bool:
        return self.status is CacheStatus.LOADED


@dataclass(frozen=True)
class LoadingProgress:
    """Snapshot of a library load. loaded never exceeds total."""

    total: int
    loaded: int

    @property
    def is_complete(self) -> bool:
        return self.loaded >= self.total


class ResolutionCache:
    """
    Thread-safe store of resolved playlists with load progress.

    Attributes:
        _catalog: Catalog the playlists are fetched from.
        _sink: Optional best-effort persistence target.
        _page_delay: Seconds between track page requests.
        _sleep: Sleep function (injected by tests).
        _entries: Cached entries by playlist id.
        _state: Current LoadState.
        _total / _loaded: Library-load progress counters.

    Thread Safety:
        _entries, _state and the counters are only touched under _lock.
        Remote calls are made without holding it.
    """

    def __init__(
        self,
        catalog: "CatalogClient",
        sink: "PersistenceSink | None" = None,
        page_delay: float = DEFAULT_PAGE_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._catalog = catalog
        self._sink = sink
        self._page_delay = page_delay
        self._sleep = sleep

        self._lock = threading.Lock()
        self._entries: dict[str, ResolutionCacheEntry] = {}
        self._state = LoadState.IDLE
        self._total = 0
        self._loaded = 0

    # =========================================================================
    # Progress
    # =========================================================================

    def begin_library_load(self, total: int) -> None:
        """Reset progress for a fresh library load of `total` playlists."""
        with self._lock:
            self._total = max(0, total)
            self._loaded = 0

    def get_loading_progress(self) -> LoadingProgress:
        with self._lock:
            return LoadingProgress(total=self._total, loaded=self._loaded)

    def _advance(self, count: int = 1) -> None:
        with self._lock:
            self._loaded = min(self._loaded + count, self._total)

    @property
    def state(self) -> LoadState:
        with self._lock:
            return self._state

    def _try_begin_loading(self) -> bool:
        with self._lock:
            if self._state is LoadState.LOADING:
                return False
            self._state = LoadState.LOADING
            return True

    def _finish_loading(self) -> None:
        with self._lock:
            self._state = LoadState.IDLE

    # =========================================================================
    # Entries
    # =========================================================================

    def get(self, playlist_id: str) -> ResolutionCacheEntry | None:
        with self._lock:
            return self._entries.get(playlist_id)

    def entries(self) -> list[ResolutionCacheEntry]:
        with self._lock:
            return list(self._entries.values())

    def __contains__(self, playlist_id: object) -> bool:
        with self._lock:
            return playlist_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _store(self, entry: ResolutionCacheEntry) -> ResolutionCacheEntry:
        """Store an entry unless one already exists; return the stored one."""
        with self._lock:
            return self._entries.setdefault(entry.remote_id, entry)

    # =========================================================================
    # Loading
    # =========================================================================

    def resolve_playlist(self, playlist_id: str) -> ResolutionCacheEntry:
        """
        Return the cached entry for a playlist, fetching it on first use.

        Args:
            playlist_id: Playlist id in the cache's catalog.

        Returns:
            The LOADED, NOT_FOUND or ERRORED entry for the id.

        Raises:
            CatalogError: Only when the client was never connected (an auth
                          error raised before any request). A remote 401/403
                          for this playlist is stored as ERRORED.
        """
        cached = self.get(playlist_id)
        if cached is not None:
            logger.debug(f"Playlist {playlist_id}: served from cache ({cached.status.value})")
            return cached

        try:
            metadata = self._catalog.fetch_playlist_metadata(playlist_id)
        except CatalogError as e:
            if e.is_contract_violation:
                raise
            if e.is_not_found:
                logger.warning(f"Playlist {playlist_id} not found; it will not be fetched again")
                return self._store(ResolutionCacheEntry.not_found(playlist_id))
            logger.error(f"Playlist {playlist_id}: metadata fetch failed: {e}")
            return self._store(ResolutionCacheEntry.errored(playlist_id, str(e)))
        except Exception as e:
            logger.error(f"Playlist {playlist_id}: unexpected error: {e}")
            return self._store(ResolutionCacheEntry.errored(playlist_id, str(e)))

        try:
            items = fetch_all_pages(
                lambda cursor: self._catalog.fetch_tracks_page(playlist_id, cursor),
                delay=self._page_delay,
                sleep=self._sleep,
                description=f"playlist '{metadata.name}'"
            )
            entry = ResolutionCacheEntry.loaded(metadata, items, remote_id=playlist_id)
        except CatalogError as e:
            if e.is_contract_violation:
                raise
            logger.error(f"Playlist {playlist_id}: track fetch failed: {e}")
            return self._store(ResolutionCacheEntry.errored(playlist_id, str(e)))
        except Exception as e:
            logger.error(f"Playlist {playlist_id}: unexpected error: {e}")
            return self._store(ResolutionCacheEntry.errored(playlist_id, str(e)))

        stored = self._store(entry)
        if stored is entry:
            logger.debug(
                f"Playlist '{metadata.name}' loaded: {entry.track_count} tracks"
            )
            self._persist(entry)
        return stored

    def _persist(self, entry: ResolutionCacheEntry) -> None:
        if self._sink is None:
            return
        try:
            self._sink.persist_resolved_playlist(entry)
        except Exception as e:
            logger.warning(f"Could not persist playlist {entry.remote_id}: {e}")

    def _load_all(
        self,
        playlist_ids: list[str],
        on_entry: Callable[[ResolutionCacheEntry], None] | None
    ) -> None:
        remaining = len(playlist_ids)
        for playlist_id in playlist_ids:
            try:
                entry = self.resolve_playlist(playlist_id)
            except CatalogError:
                # Client not connected: the ids left unfetched still count
                self._advance(remaining)
                raise
            remaining -= 1
            self._advance()
            if on_entry is not None:
                on_entry(entry)

    def load_details_in_background(
        self,
        playlist_ids: Iterable[str],
        on_entry: Callable[[ResolutionCacheEntry], None] | None = None
    ) -> bool:
        """
        Resolve every playlist id, advancing progress once per id.

        Runs on the calling thread; use start_background_load() to run it
        on a worker thread.

        Args:
            playlist_ids: Ids to resolve, in order.
            on_entry: Optional callback receiving each entry once resolved.

        Returns:
            True if the load ran, False if another load was in progress.
        """
        if not self._try_begin_loading():
            logger.debug("Library load already in progress; ignoring request")
            return False

        try:
            self._load_all(list(playlist_ids), on_entry)
        finally:
            self._finish_loading()
        return True

    def start_background_load(
        self,
        playlist_ids: Iterable[str],
        on_entry: Callable[[ResolutionCacheEntry], None] | None = None
    ) -> threading.Thread | None:
        """
        Run the library load on a daemon thread.

        Returns:
            The started thread, or None if a load was already in progress.
        """
        if not self._try_begin_loading():
            logger.debug("Library load already in progress; not starting another")
            return None

        ids = list(playlist_ids)

        def run() -> None:
            try:
                self._load_all(ids, on_entry)
            except CatalogError as e:
                logger.error(f"Library load aborted: {e}")
            finally:
                self._finish_loading()

        thread = threading.Thread(target=run, name="harmony-library-load", daemon=True)
        thread.start()
        return thread
