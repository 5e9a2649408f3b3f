"""
Playlist transfer between catalogs.

PlaylistSynchronizer copies one source playlist into a target catalog in
two rate-limited stages:

    1. Resolution: every source track is resolved in the target catalog
       with run_batches (resolve_batch_size tracks at a time, resolve_delay
       seconds between chunks).
    2. Mutation: the destination playlist is created, then the matched ids
       are added add_batch_size at a time, one request per chunk with
       add_delay seconds between requests.

A transfer is never all-or-nothing. Once the destination playlist exists a
SyncReport is always returned, listing both the tracks added and the
source tracks that could not be transferred (no match, resolver error or a
rejected add request).

Usage:
    source = load_source_playlist(cache, playlist_id)
    report = PlaylistSynchronizer(resolver, settings).sync_playlist(
        source,
        create_playlist=target.create_playlist,
        add_tracks=target.add_tracks_to_playlist,
    )
"""

import time
from dataclasses import dataclass
from typing import Callable, Sequence

from harmony_sync.catalogs.base import PlaylistMetadata
from harmony_sync.core.config import SyncSettings
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import format_progress_message, get_logger, log_match_failure
from harmony_sync.core.progress import MatchingProgressBar
from harmony_sync.matching.models import TrackQuery
from harmony_sync.matching.resolver import TrackResolver
from harmony_sync.sync.batch import BatchReport, TaskOutcome, chunked, run_batches
from harmony_sync.sync.cache import ResolutionCache


logger = get_logger(__name__)

NO_MATCH_REASON = "no acceptable candidate"


@dataclass(frozen=True)
class SourcePlaylist:
    """
    A playlist ready to be transferred.

    Attributes:
        metadata: Header of the playlist in its source catalog.
        tracks: Tracks to resolve, in playlist order.
    """

    metadata: PlaylistMetadata
    tracks: tuple[TrackQuery, ...]


@dataclass(frozen=True)
class SyncReport:
    """
    Outcome of one playlist transfer.

    Attributes:
        destination_playlist_id: Id of the playlist created in the target.
        tracks_added: Tracks actually added to the destination.
        total_tracks: Tracks in the source playlist.
        failed_count: len(failed_songs).
        failed_songs: Source tracks that were not transferred, in source order.
    """

    destination_playlist_id: str
    tracks_added: int
    total_tracks: int
    failed_count: int
    failed_songs: tuple[TrackQuery, ...]


def build_description(description: str, suffix: str) -> str:
    return f"{description} {suffix}".strip()


def load_source_playlist(cache: ResolutionCache, playlist_id: str) -> SourcePlaylist:
    """
    Build a SourcePlaylist from the resolution cache.

    The playlist is resolved (fetched) on a cache miss.

    Raises:
        CatalogError: is_not_found=True if the playlist is NOT_FOUND or
                      ERRORED in the cache.
    """
    entry = cache.resolve_playlist(playlist_id)
    if not entry.is_loaded or entry.metadata is None:
        raise CatalogError(
            f"Playlist {playlist_id} could not be loaded ({entry.status.value})",
            details={"playlist_id": playlist_id, "status": entry.status.value, "error": entry.error},
            is_not_found=True
        )

    tracks = tuple(
        TrackQuery(
            name=record.name,
            artist=record.artist,
            album=record.album or None,
            duration_ms=record.duration_ms,
            remote_id=record.remote_id,
        )
        for record in entry.tracks.values()
    )
    return SourcePlaylist(metadata=entry.metadata, tracks=tracks)


class PlaylistSynchronizer:
    """
    Transfers playlists into the catalog its resolver searches.

    Attributes:
        _resolver: Resolver bound to the TARGET catalog.
        _settings: Batch sizes, delays and the description suffix.
        _sleep: Sleep function (injected by tests).
    """

    def __init__(
        self,
        resolver: TrackResolver,
        settings: SyncSettings = SyncSettings(),
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._resolver = resolver
        self._settings = settings
        self._sleep = sleep

    def sync_playlist(
        self,
        source: SourcePlaylist,
        create_playlist: Callable[[str, str], str],
        add_tracks: Callable[[str, Sequence[str]], None],
        progress_bar: MatchingProgressBar | None = None
    ) -> SyncReport:
        """
        Transfer a source playlist into the target catalog.

        Args:
            source: Playlist to copy.
            create_playlist: PlaylistWriter.create_playlist of the target.
            add_tracks: PlaylistWriter.add_tracks_to_playlist of the target.
            progress_bar: Optional bar advanced once per resolved track.

        Returns:
            SyncReport for the new destination playlist.

        Raises:
            CatalogError: If the destination playlist cannot be created.
        """
        settings = self._settings
        total = len(source.tracks)
        logger.info(f"Resolving {total} tracks from '{source.metadata.name}'")

        def on_outcome(outcome: TaskOutcome[TrackQuery, str | None]) -> None:
            if progress_bar is not None:
                progress_bar.update(matched=outcome.ok and outcome.value is not None)

        outcomes = run_batches(
            source.tracks,
            batch_size=settings.resolve_batch_size,
            delay=settings.resolve_delay,
            worker=self._resolver.resolve_track,
            sleep=self._sleep,
            on_outcome=on_outcome
        )

        matched: list[tuple[int, str]] = []
        failed: set[int] = set()
        for position, outcome in enumerate(outcomes):
            query = outcome.item
            if not outcome.ok:
                failed.add(position)
                log_match_failure(logger, query.name, query.artist, str(outcome.error), query.remote_id)
            elif outcome.value is None:
                failed.add(position)
                log_match_failure(logger, query.name, query.artist, NO_MATCH_REASON, query.remote_id)
            else:
                matched.append((position, outcome.value))
                logger.debug(f"Matched {query.display_name} -> {outcome.value}")

        logger.info(format_progress_message(total, total, len(matched), len(failed)))

        destination_id = create_playlist(
            source.metadata.name,
            build_description(source.metadata.description, settings.description_suffix)
        )

        tracks_added = 0
        if matched:
            chunks = [tuple(chunk) for chunk in chunked(matched, settings.add_batch_size)]
            add_outcomes = run_batches(
                chunks,
                batch_size=1,
                delay=settings.add_delay,
                worker=lambda chunk: add_tracks(destination_id, [remote_id for _, remote_id in chunk]),
                sleep=self._sleep
            )
            add_report = BatchReport.from_outcomes(add_outcomes)
            tracks_added = sum(len(outcome.item) for outcome in add_report.succeeded)
            for chunk in add_report.failed:
                logger.error(f"Failed to add {len(chunk)} tracks to {destination_id}")
                failed.update(position for position, _ in chunk)

        failed_songs = tuple(source.tracks[position] for position in sorted(failed))
        logger.info(
            f"Transferred '{source.metadata.name}': {tracks_added}/{total} added, "
            f"{len(failed_songs)} failed"
        )
        return SyncReport(
            destination_playlist_id=destination_id,
            tracks_added=tracks_added,
            total_tracks=total,
            failed_count=len(failed_songs),
            failed_songs=failed_songs,
        )
