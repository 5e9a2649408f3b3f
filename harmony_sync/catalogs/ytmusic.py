"""
YouTube Music catalog adapter built on ytmusicapi.

YouTubeMusicCatalog implements CatalogClient and PlaylistWriter.

Authentication:
    Searching and reading public playlists work anonymously. Creating and
    editing playlists needs the header file produced by `ytmusicapi
    browser` (ytmusic.auth_file in config.yaml).

Pagination:
    ytmusicapi follows playlist continuations internally, so a playlist is
    returned as a single page (next_cursor is always None). The response
    fetched for the metadata is reused by the page fetch that follows it,
    so a playlist is downloaded once per resolution.

Error Mapping:
    ytmusicapi raises plain exceptions, so failures are classified from
    their message: "404"/"not found" -> is_not_found, anything matching
    TRANSIENT_ERROR_PATTERNS -> is_transient (429 -> is_rate_limit).

Usage:
    catalog = YouTubeMusicCatalog(auth_file=config.ytmusic.auth_file)
    candidates = catalog.search("Song Artist", limit=15)
"""

import threading
import time
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from ytmusicapi import YTMusic

from harmony_sync.catalogs.base import (
    Page,
    PlaylistMetadata,
    is_transient_error_message,
    with_retry,
)
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger
from harmony_sync.matching.models import Candidate
from harmony_sync.matching.normalize import extract_core_title
from harmony_sync.utils import parse_duration


logger = get_logger(__name__)

T = TypeVar("T")

ORIGIN = "YouTube Music"

NOT_FOUND_PATTERNS = ("404", "not found", "does not exist")
RATE_LIMIT_PATTERNS = ("429", "too many", "quota")


def classify_ytmusic_error(error: Exception, message: str, details: dict | None = None) -> CatalogError:
    """Turn a ytmusicapi exception into a classified CatalogError."""
    details = dict(details or {})
    details["original_error"] = str(error)
    text = str(error).lower()

    if any(pattern in text for pattern in NOT_FOUND_PATTERNS):
        return CatalogError(f"{message}: not found", details=details, is_not_found=True)
    if any(pattern in text for pattern in RATE_LIMIT_PATTERNS):
        return CatalogError(f"{message}: rate limited", details=details, is_rate_limit=True)
    return CatalogError(
        f"{message}: {error}",
        details=details,
        is_transient=is_transient_error_message(text)
    )


def _artist_credit(item: dict[str, Any]) -> str:
    artists = item.get("artists") or []
    names = [a.get("name", "") for a in artists if isinstance(a, dict) and a.get("name")]
    return names[0] if names else ""


def _duration_ms(item: dict[str, Any]) -> int | None:
    seconds = item.get("duration_seconds")
    if isinstance(seconds, int) and seconds > 0:
        return seconds * 1000
    seconds = parse_duration(item.get("duration"))
    return seconds * 1000 if seconds > 0 else None


def item_to_candidate(item: dict[str, Any]) -> Candidate | None:
    """
    Convert a ytmusicapi song/playlist item; None without a videoId.

    Video uploads carry hashtags and quoted titles, so the title is reduced
    with extract_core_title().
    """
    if not item or not item.get("videoId"):
        return None
    album = item.get("album") or {}
    return Candidate(
        name=extract_core_title(item.get("title")),
        artist=_artist_credit(item),
        album=album.get("name") or "" if isinstance(album, dict) else "",
        duration_ms=_duration_ms(item),
        remote_id=item["videoId"],
    )


class YouTubeMusicCatalog:
    """
    YouTube Music implementation of CatalogClient and PlaylistWriter.

    Attributes:
        _ytmusic: ytmusicapi client.
        _authenticated: Whether an auth file was supplied.
        _last_playlist: (id, response) of the last metadata fetch, consumed
                        by the next fetch_tracks_page() for the same id.
    """

    def __init__(
        self,
        auth_file: Path | None = None,
        language: str = "en",
        ytmusic: YTMusic | None = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        if ytmusic is None:
            ytmusic = YTMusic(str(auth_file), language=language) if auth_file else YTMusic(language=language)
        self._ytmusic = ytmusic
        self._authenticated = auth_file is not None
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_playlist: tuple[str, dict[str, Any]] | None = None

    def _call(self, description: str, operation: Callable[[], T], details: dict | None = None) -> T:
        def attempt() -> T:
            try:
                return operation()
            except CatalogError:
                raise
            except Exception as e:
                raise classify_ytmusic_error(e, description, details) from e

        return with_retry(attempt, description, sleep=self._sleep)

    def _require_auth(self) -> None:
        if not self._authenticated:
            raise CatalogError(
                "YouTube Music playlist changes require ytmusic.auth_file in config.yaml",
                is_auth_error=True
            )

    # =========================================================================
    # CatalogClient
    # =========================================================================

    def search(self, query: str, limit: int) -> list[Candidate]:
        results = self._call(
            f"YouTube Music search '{query}'",
            lambda: self._ytmusic.search(query, filter="songs", limit=limit, ignore_spelling=True),
            details={"query": query}
        ) or []

        candidates = []
        seen: set[str] = set()
        for item in results:
            candidate = item_to_candidate(item)
            if candidate is None or candidate.remote_id in seen:
                continue
            seen.add(candidate.remote_id)
            candidates.append(candidate)
        return candidates[:limit]

    def _get_playlist(self, playlist_id: str) -> dict[str, Any]:
        playlist = self._call(
            f"YouTube Music playlist {playlist_id}",
            lambda: self._ytmusic.get_playlist(playlist_id, limit=None),
            details={"playlist_id": playlist_id}
        )
        if not playlist:
            raise CatalogError(
                f"Playlist not found: {playlist_id}",
                details={"playlist_id": playlist_id},
                is_not_found=True
            )
        return playlist

    def _take_last_playlist(self, playlist_id: str) -> dict[str, Any] | None:
        with self._lock:
            last, self._last_playlist = self._last_playlist, None
        if last is not None and last[0] == playlist_id:
            return last[1]
        return None

    def fetch_tracks_page(self, playlist_id: str, cursor: str | None = None) -> Page[Candidate]:
        playlist = self._take_last_playlist(playlist_id) or self._get_playlist(playlist_id)
        candidates = tuple(
            c for c in (item_to_candidate(item) for item in playlist.get("tracks") or []) if c is not None
        )
        return Page(items=candidates, next_cursor=None)

    def fetch_playlist_metadata(self, playlist_id: str) -> PlaylistMetadata:
        playlist = self._get_playlist(playlist_id)
        with self._lock:
            self._last_playlist = (playlist_id, playlist)
        author = playlist.get("author") or {}
        thumbnails = playlist.get("thumbnails") or []
        return PlaylistMetadata(
            remote_id=playlist.get("id") or playlist_id,
            name=playlist.get("title") or "",
            description=playlist.get("description") or "",
            owner=author.get("name") or "" if isinstance(author, dict) else str(author),
            origin=ORIGIN,
            track_total=playlist.get("trackCount") or len(playlist.get("tracks") or []),
            image_url=thumbnails[-1].get("url") if thumbnails else None,
        )

    # =========================================================================
    # PlaylistWriter
    # =========================================================================

    def create_playlist(self, name: str, description: str) -> str:
        self._require_auth()
        result = self._call(
            f"YouTube Music create playlist '{name}'",
            lambda: self._ytmusic.create_playlist(name, description, privacy_status="PRIVATE"),
            details={"name": name}
        )
        if not isinstance(result, str) or not result:
            raise CatalogError(
                f"YouTube Music did not return an id for new playlist '{name}'",
                details={"name": name, "response": str(result)}
            )
        logger.info(f"Created YouTube Music playlist '{name}' ({result})")
        return result

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        self._require_auth()
        video_ids = list(track_ids)
        result = self._call(
            f"YouTube Music add {len(video_ids)} tracks to {playlist_id}",
            lambda: self._ytmusic.add_playlist_items(playlist_id, video_ids, duplicates=True),
            details={"playlist_id": playlist_id, "count": len(video_ids)}
        )
        status = result.get("status") if isinstance(result, dict) else None
        if status is not None and "SUCCEEDED" not in str(status):
            raise CatalogError(
                f"YouTube Music rejected adding tracks to {playlist_id}: {status}",
                details={"playlist_id": playlist_id, "status": str(status)}
            )
