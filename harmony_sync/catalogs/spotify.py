"""
Spotify catalog adapter built on spotipy.

SpotifyCatalog implements CatalogClient and PlaylistWriter on top of the
Spotify Web API. It converts spotipy payloads into Candidate and
PlaylistMetadata objects and spotipy/requests failures into CatalogError.

Lifecycle:
    The adapter must be connected before use. Every API method called on
    an unconnected adapter raises CatalogError(is_auth_error=True); this
    is a programming error and is never retried or cached.

Authentication:
    1. User Auth (default): OAuth flow, opens a browser on first run and
       caches the token. Required to list the user's playlists and to
       create or edit playlists.
    2. Client Credentials: public playlists and search only.

Pagination:
    Cursors are string offsets into the listing ("0", "100", ...).

Error Mapping:
    HTTP 404        -> is_not_found
    HTTP 429        -> is_rate_limit (transient)
    HTTP 401/403    -> is_auth_error
    HTTP 5xx        -> is_transient
    requests errors -> is_transient

Usage:
    catalog = SpotifyCatalog(client_id, client_secret)
    catalog.connect()
    candidates = catalog.search("Song Artist", limit=15)
"""

import time
from typing import Any, Callable, Sequence, TypeVar

import requests
import spotipy
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth, SpotifyOauthError

from harmony_sync.catalogs.base import (
    Page,
    PlaylistMetadata,
    is_transient_error_message,
    with_retry,
)
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger
from harmony_sync.matching.models import Candidate
from harmony_sync.sync.batch import fetch_all_pages


logger = get_logger(__name__)

T = TypeVar("T")

ORIGIN = "Spotify"

USER_SCOPES = "playlist-read-private playlist-modify-private playlist-modify-public"

# Spotify API page limits
SEARCH_MAX_LIMIT = 50
PLAYLIST_PAGE_SIZE = 100
USER_PLAYLISTS_PAGE_SIZE = 50

# Spotify rejects descriptions longer than this
MAX_DESCRIPTION_LENGTH = 300


def translate_spotify_error(error: Exception, message: str, details: dict | None = None) -> CatalogError:
    """Map a spotipy/requests exception to a classified CatalogError."""
    details = dict(details or {})
    details["original_error"] = str(error)

    if isinstance(error, spotipy.SpotifyException):
        status = error.http_status
        details["http_status"] = status
        if status == 404:
            return CatalogError(f"{message}: not found", details=details, is_not_found=True)
        if status == 429:
            return CatalogError(f"{message}: rate limited", details=details, is_rate_limit=True)
        if status in (401, 403):
            return CatalogError(f"{message}: not authorized", details=details, is_auth_error=True)
        if status is not None and status >= 500:
            return CatalogError(f"{message}: server error {status}", details=details, is_transient=True)
        return CatalogError(
            f"{message}: {error}",
            details=details,
            is_transient=is_transient_error_message(str(error))
        )

    if isinstance(error, requests.exceptions.RequestException):
        return CatalogError(f"{message}: {error}", details=details, is_transient=True)

    return CatalogError(
        f"{message}: {error}",
        details=details,
        is_transient=is_transient_error_message(str(error))
    )


def _artist_credit(track: dict[str, Any]) -> str:
    artists = track.get("artists") or []
    names = [artist.get("name", "") for artist in artists if artist.get("name")]
    return names[0] if names else ""


def track_to_candidate(track: dict[str, Any]) -> Candidate | None:
    """Convert a Spotify track object; None for local files and removed tracks."""
    if not track or not track.get("uri") or track.get("is_local"):
        return None
    album = track.get("album") or {}
    return Candidate(
        name=track.get("name") or "",
        artist=_artist_credit(track),
        album=album.get("name") or "",
        duration_ms=track.get("duration_ms"),
        remote_id=track["uri"],
    )


def playlist_to_metadata(playlist: dict[str, Any]) -> PlaylistMetadata:
    owner = playlist.get("owner") or {}
    images = playlist.get("images") or []
    tracks = playlist.get("tracks") or {}
    return PlaylistMetadata(
        remote_id=playlist["id"],
        name=playlist.get("name") or "",
        description=playlist.get("description") or "",
        owner=owner.get("display_name") or owner.get("id") or "",
        origin=ORIGIN,
        track_total=tracks.get("total") or 0,
        image_url=images[0].get("url") if images else None,
    )


class SpotifyCatalog:
    """
    Spotify implementation of CatalogClient and PlaylistWriter.

    Attributes:
        _client_id / _client_secret: Application credentials.
        _user_auth: Whether the OAuth user flow is used.
        _redirect_uri: OAuth redirect URI.
        _spotify: Connected spotipy.Spotify instance, None until connect().
        _user_id: Id of the authenticated user (user auth only).

    Thread Safety:
        spotipy keeps its own HTTP session; search and read methods can be
        called from the workers of a batch.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        user_auth: bool = True,
        redirect_uri: str = "http://127.0.0.1:8888/callback",
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._user_auth = user_auth
        self._redirect_uri = redirect_uri
        self._sleep = sleep
        self._spotify: spotipy.Spotify | None = None
        self._user_id: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._spotify is not None

    def connect(self, spotify_instance: spotipy.Spotify | None = None) -> "SpotifyCatalog":
        """
        Authenticate and verify the connection with a cheap API call.

        Args:
            spotify_instance: Pre-built client (used by tests); built from
                              the credentials when None.

        Returns:
            self, for chaining.

        Raises:
            CatalogError: is_auth_error=True if authentication fails.
        """
        try:
            if spotify_instance is None:
                if self._user_auth:
                    auth_manager = SpotifyOAuth(
                        client_id=self._client_id,
                        client_secret=self._client_secret,
                        redirect_uri=self._redirect_uri,
                        scope=USER_SCOPES,
                        open_browser=True
                    )
                else:
                    auth_manager = SpotifyClientCredentials(
                        client_id=self._client_id,
                        client_secret=self._client_secret
                    )
                spotify_instance = spotipy.Spotify(auth_manager=auth_manager)

            if self._user_auth:
                user = spotify_instance.current_user()
                self._user_id = user["id"] if user else None
            else:
                spotify_instance.search(q="test", type="track", limit=1)
        except (spotipy.SpotifyException, SpotifyOauthError, requests.exceptions.RequestException) as e:
            raise CatalogError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

        self._spotify = spotify_instance
        logger.debug(f"Connected to Spotify (user auth: {self._user_auth})")
        return self

    def _client(self) -> spotipy.Spotify:
        if self._spotify is None:
            raise CatalogError(
                "SpotifyCatalog is not connected. Call connect() first.",
                is_auth_error=True
            )
        return self._spotify

    def _require_user(self) -> str:
        self._client()
        if not self._user_auth or not self._user_id:
            raise CatalogError(
                "This operation requires Spotify user authentication (spotify.user_auth: true)",
                is_auth_error=True
            )
        return self._user_id

    def _call(self, description: str, operation: Callable[[], T], details: dict | None = None) -> T:
        """Run one API call with error translation and transient retries."""
        def attempt() -> T:
            try:
                return operation()
            except (spotipy.SpotifyException, requests.exceptions.RequestException) as e:
                raise translate_spotify_error(e, description, details) from e

        return with_retry(attempt, description, sleep=self._sleep)

    # =========================================================================
    # CatalogClient
    # =========================================================================

    def search(self, query: str, limit: int) -> list[Candidate]:
        client = self._client()
        result = self._call(
            f"Spotify search '{query}'",
            lambda: client.search(q=query, type="track", limit=min(limit, SEARCH_MAX_LIMIT)),
            details={"query": query}
        )
        items = ((result or {}).get("tracks") or {}).get("items") or []
        return [c for c in (track_to_candidate(item) for item in items) if c is not None]

    def fetch_tracks_page(self, playlist_id: str, cursor: str | None = None) -> Page[Candidate]:
        client = self._client()
        offset = int(cursor) if cursor else 0
        result = self._call(
            f"Spotify playlist items {playlist_id}@{offset}",
            lambda: client.playlist_items(
                playlist_id,
                limit=PLAYLIST_PAGE_SIZE,
                offset=offset,
                additional_types=["track"]
            ),
            details={"playlist_id": playlist_id, "offset": offset}
        )
        result = result or {}

        candidates = []
        for item in result.get("items") or []:
            candidate = track_to_candidate((item or {}).get("track"))
            if candidate is not None:
                candidates.append(candidate)

        next_cursor = str(offset + PLAYLIST_PAGE_SIZE) if result.get("next") else None
        return Page(items=tuple(candidates), next_cursor=next_cursor)

    def fetch_playlist_metadata(self, playlist_id: str) -> PlaylistMetadata:
        client = self._client()
        result = self._call(
            f"Spotify playlist {playlist_id}",
            lambda: client.playlist(
                playlist_id,
                fields="id,name,description,owner,images,tracks.total"
            ),
            details={"playlist_id": playlist_id}
        )
        if not result:
            raise CatalogError(
                f"Playlist not found: {playlist_id}",
                details={"playlist_id": playlist_id},
                is_not_found=True
            )
        return playlist_to_metadata(result)

    def list_user_playlists(self, page_delay: float = 0.5) -> list[PlaylistMetadata]:
        """All playlists in the current user's library."""
        self._require_user()
        client = self._client()

        def fetch_page(cursor: str | None) -> Page[PlaylistMetadata]:
            offset = int(cursor) if cursor else 0
            result = self._call(
                f"Spotify user playlists @{offset}",
                lambda: client.current_user_playlists(limit=USER_PLAYLISTS_PAGE_SIZE, offset=offset)
            ) or {}
            playlists = tuple(
                playlist_to_metadata(item) for item in result.get("items") or [] if item
            )
            next_cursor = str(offset + USER_PLAYLISTS_PAGE_SIZE) if result.get("next") else None
            return Page(items=playlists, next_cursor=next_cursor)

        return fetch_all_pages(fetch_page, delay=page_delay, sleep=self._sleep, description="user playlists")

    # =========================================================================
    # PlaylistWriter
    # =========================================================================

    def create_playlist(self, name: str, description: str) -> str:
        user_id = self._require_user()
        client = self._client()
        result = self._call(
            f"Spotify create playlist '{name}'",
            lambda: client.user_playlist_create(
                user_id,
                name,
                public=False,
                description=description[:MAX_DESCRIPTION_LENGTH]
            ),
            details={"name": name}
        )
        playlist_id = (result or {}).get("id")
        if not playlist_id:
            raise CatalogError(
                f"Spotify did not return an id for new playlist '{name}'",
                details={"name": name}
            )
        logger.info(f"Created Spotify playlist '{name}' ({playlist_id})")
        return playlist_id

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        self._require_user()
        client = self._client()
        uris = list(track_ids)
        self._call(
            f"Spotify add {len(uris)} tracks to {playlist_id}",
            lambda: client.playlist_add_items(playlist_id, uris),
            details={"playlist_id": playlist_id, "count": len(uris)}
        )
