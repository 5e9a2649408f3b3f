# tests/test_catalogs.py
"""Test the Spotify and YouTube Music catalog adapters"""

from pathlib import Path
from unittest.mock import Mock

import pytest
import requests
import spotipy

from harmony_sync.catalogs.base import with_retry
from harmony_sync.catalogs.spotify import (
    MAX_DESCRIPTION_LENGTH,
    SpotifyCatalog,
    track_to_candidate,
    translate_spotify_error,
)
from harmony_sync.catalogs.ytmusic import (
    YouTubeMusicCatalog,
    classify_ytmusic_error,
    item_to_candidate,
)
from harmony_sync.core.exceptions import CatalogError


def spotify_track(uri, name="Song", artist="Artist", album="Album", duration_ms=200000, **extra):
    track = {
        "uri": uri,
        "name": name,
        "artists": [{"name": artist}, {"name": "Guest"}],
        "album": {"name": album},
        "duration_ms": duration_ms,
    }
    track.update(extra)
    return track


def connected_spotify(sleep_recorder, user_auth=True):
    client = Mock()
    client.current_user.return_value = {"id": "user-1"}
    catalog = SpotifyCatalog("id", "secret", user_auth=user_auth, sleep=sleep_recorder)
    return catalog.connect(client), client


class TestSpotifyErrors:
    """Test spotipy error classification"""

    @pytest.mark.parametrize("status,flag", [
        (404, "is_not_found"),
        (429, "is_rate_limit"),
        (401, "is_auth_error"),
        (403, "is_auth_error"),
        (503, "is_transient"),
    ])
    def test_http_status(self, status, flag):
        """Test HTTP status classification"""
        error = translate_spotify_error(spotipy.SpotifyException(status, -1, "failed"), "call")
        assert getattr(error, flag)
        assert error.details["http_status"] == status
        assert not error.is_contract_violation

    def test_network_error_is_transient(self):
        """Test network errors are transient"""
        error = translate_spotify_error(requests.exceptions.ConnectionError("reset"), "call")
        assert error.is_transient

    def test_bad_request_is_permanent(self):
        """Test a 400 is neither transient nor not-found"""
        error = translate_spotify_error(spotipy.SpotifyException(400, -1, "invalid id"), "call")
        assert not error.is_transient
        assert not error.is_not_found


class TestSpotifyCatalog:
    """Test the Spotify adapter against a mocked spotipy client"""

    def test_unconnected_is_auth_error(self):
        """Test use before connect() is a contract violation"""
        catalog = SpotifyCatalog("id", "secret")
        assert not catalog.is_connected
        with pytest.raises(CatalogError) as exc_info:
            catalog.search("Song", 15)
        assert exc_info.value.is_auth_error
        assert exc_info.value.is_contract_violation

    def test_connect_failure(self):
        """Test a rejected token fails connect()"""
        client = Mock()
        client.current_user.side_effect = spotipy.SpotifyException(401, -1, "bad token")
        with pytest.raises(CatalogError) as exc_info:
            SpotifyCatalog("id", "secret").connect(client)
        assert exc_info.value.is_auth_error

    def test_search(self, sleep_recorder):
        """Test search results become candidates"""
        catalog, client = connected_spotify(sleep_recorder)
        assert catalog.is_connected
        client.search.return_value = {"tracks": {"items": [
            spotify_track("spotify:track:1"),
            spotify_track("spotify:track:2", is_local=True),
            None,
        ]}}

        candidates = catalog.search("Song Artist", 80)

        assert [c.remote_id for c in candidates] == ["spotify:track:1"]
        assert candidates[0].artist == "Artist"
        client.search.assert_called_once_with(q="Song Artist", type="track", limit=50)

    def test_search_retries_transient_errors(self, sleep_recorder):
        """Test transient search errors are retried"""
        catalog, client = connected_spotify(sleep_recorder)
        client.search.side_effect = [
            spotipy.SpotifyException(502, -1, "bad gateway"),
            {"tracks": {"items": [spotify_track("spotify:track:1")]}},
        ]

        assert len(catalog.search("Song", 15)) == 1
        assert len(sleep_recorder.calls) == 1

    def test_tracks_page_cursor_is_offset(self, sleep_recorder):
        """Test track page cursors are offsets"""
        catalog, client = connected_spotify(sleep_recorder)
        client.playlist_items.return_value = {
            "items": [{"track": spotify_track("spotify:track:1")}, {"track": None}],
            "next": "https://api.spotify.com/next",
        }

        page = catalog.fetch_tracks_page("pl1")
        assert page.next_cursor == "100"
        assert len(page.items) == 1

        client.playlist_items.return_value = {"items": [], "next": None}
        page = catalog.fetch_tracks_page("pl1", page.next_cursor)
        assert page.next_cursor is None
        assert client.playlist_items.call_args.kwargs["offset"] == 100

    def test_metadata_not_found(self, sleep_recorder):
        """Test a 404 playlist is reported as not found"""
        catalog, client = connected_spotify(sleep_recorder)
        client.playlist.side_effect = spotipy.SpotifyException(404, -1, "missing")

        with pytest.raises(CatalogError) as exc_info:
            catalog.fetch_playlist_metadata("gone")
        assert exc_info.value.is_not_found
        assert sleep_recorder.calls == []

    def test_metadata(self, sleep_recorder):
        """Test playlist metadata conversion"""
        catalog, client = connected_spotify(sleep_recorder)
        client.playlist.return_value = {
            "id": "pl1",
            "name": "Road Trip",
            "description": "Songs",
            "owner": {"display_name": "Test User"},
            "images": [{"url": "https://img/1"}],
            "tracks": {"total": 42},
        }

        metadata = catalog.fetch_playlist_metadata("pl1")

        assert metadata.owner == "Test User"
        assert metadata.track_total == 42
        assert metadata.image_url == "https://img/1"
        assert metadata.origin == "Spotify"

    def test_create_and_add(self, sleep_recorder):
        """Test creating a playlist and adding tracks"""
        catalog, client = connected_spotify(sleep_recorder)
        client.user_playlist_create.return_value = {"id": "new-pl"}

        playlist_id = catalog.create_playlist("Road Trip", "x" * 400)
        catalog.add_tracks_to_playlist(playlist_id, ["spotify:track:1", "spotify:track:2"])

        assert playlist_id == "new-pl"
        kwargs = client.user_playlist_create.call_args.kwargs
        assert len(kwargs["description"]) == MAX_DESCRIPTION_LENGTH
        assert kwargs["public"] is False
        client.playlist_add_items.assert_called_once_with("new-pl", ["spotify:track:1", "spotify:track:2"])

    def test_writes_require_user_auth(self, sleep_recorder):
        """Test writes need user authentication"""
        catalog, _ = connected_spotify(sleep_recorder, user_auth=False)
        with pytest.raises(CatalogError) as exc_info:
            catalog.create_playlist("Road Trip", "")
        assert exc_info.value.is_auth_error

    def test_list_user_playlists(self, sleep_recorder):
        """Test listing the user's playlists"""
        catalog, client = connected_spotify(sleep_recorder)
        client.current_user_playlists.side_effect = [
            {"items": [{"id": "a", "name": "A", "tracks": {"total": 1}}], "next": "more"},
            {"items": [{"id": "b", "name": "B", "tracks": {"total": 2}}], "next": None},
        ]

        playlists = catalog.list_user_playlists(page_delay=0.0)

        assert [p.remote_id for p in playlists] == ["a", "b"]
        assert client.current_user_playlists.call_args.kwargs["offset"] == 50

    def test_track_to_candidate_skips_removed(self):
        """Test tracks without a uri are skipped"""
        assert track_to_candidate(None) is None
        assert track_to_candidate({"name": "No uri"}) is None


class TestYouTubeMusicErrors:
    """Test ytmusicapi error classification"""

    def test_not_found(self):
        """Test not-found messages"""
        assert classify_ytmusic_error(Exception("Server returned HTTP 404"), "call").is_not_found

    def test_rate_limit(self):
        """Test rate limit messages"""
        error = classify_ytmusic_error(Exception("HTTP 429: Too Many Requests"), "call")
        assert error.is_rate_limit
        assert error.is_transient

    def test_server_error_is_transient(self):
        """Test server errors are transient"""
        assert classify_ytmusic_error(Exception("Server returned HTTP 503"), "call").is_transient

    def test_unknown_error_is_permanent(self):
        """Test unrecognized errors are permanent"""
        error = classify_ytmusic_error(KeyError("contents"), "call")
        assert not error.is_transient
        assert error.details["original_error"]


class TestYouTubeMusicCatalog:
    """Test the YouTube Music adapter against a mocked YTMusic client"""

    def test_item_to_candidate(self):
        """Test song item conversion"""
        candidate = item_to_candidate({
            "videoId": "vid1",
            "title": "Song #music",
            "artists": [{"name": "Artist", "id": "a1"}],
            "album": {"name": "Album"},
            "duration": "3:25",
        })
        assert candidate.remote_id == "vid1"
        assert candidate.name == "Song"
        assert candidate.artist == "Artist"
        assert candidate.album == "Album"
        assert candidate.duration_ms == 205000

    def test_item_without_video_id(self):
        """Test items without a videoId are skipped"""
        assert item_to_candidate({"title": "Song"}) is None
        assert item_to_candidate({}) is None

    def test_item_duration_seconds(self):
        """Test duration_seconds is preferred"""
        candidate = item_to_candidate({"videoId": "v", "title": "Song", "duration_seconds": 61, "album": None})
        assert candidate.duration_ms == 61000
        assert candidate.album == ""

    def test_search_deduplicates(self, sleep_recorder):
        """Test duplicate videoIds are dropped"""
        ytmusic = Mock()
        ytmusic.search.return_value = [
            {"videoId": "v1", "title": "Song", "artists": [{"name": "Artist"}]},
            {"videoId": "v1", "title": "Song", "artists": [{"name": "Artist"}]},
            {"title": "Episode"},
            {"videoId": "v2", "title": "Song (Live)", "artists": [{"name": "Artist"}]},
        ]
        catalog = YouTubeMusicCatalog(ytmusic=ytmusic, sleep=sleep_recorder)

        candidates = catalog.search("Song Artist", 15)

        assert [c.remote_id for c in candidates] == ["v1", "v2"]
        ytmusic.search.assert_called_once_with("Song Artist", filter="songs", limit=15, ignore_spelling=True)

    def test_playlist_is_single_page(self, sleep_recorder):
        """Test a playlist comes back as one page"""
        ytmusic = Mock()
        ytmusic.get_playlist.return_value = {
            "id": "PL1",
            "title": "Road Trip",
            "author": {"name": "Someone"},
            "trackCount": 2,
            "thumbnails": [{"url": "small"}, {"url": "large"}],
            "tracks": [
                {"videoId": "v1", "title": "One", "artists": [{"name": "A"}]},
                {"videoId": None, "title": "Unavailable"},
            ],
        }
        catalog = YouTubeMusicCatalog(ytmusic=ytmusic, sleep=sleep_recorder)

        page = catalog.fetch_tracks_page("PL1")
        metadata = catalog.fetch_playlist_metadata("PL1")

        assert page.next_cursor is None
        assert [c.remote_id for c in page.items] == ["v1"]
        assert metadata.owner == "Someone"
        assert metadata.image_url == "large"
        assert metadata.origin == "YouTube Music"

    def test_metadata_response_reused_for_tracks(self, sleep_recorder):
        """Test a playlist is downloaded once for metadata plus tracks"""
        ytmusic = Mock()
        ytmusic.get_playlist.return_value = {
            "id": "PL1",
            "title": "Road Trip",
            "tracks": [{"videoId": "v1", "title": "One", "artists": [{"name": "A"}]}],
        }
        catalog = YouTubeMusicCatalog(ytmusic=ytmusic, sleep=sleep_recorder)

        catalog.fetch_playlist_metadata("PL1")
        page = catalog.fetch_tracks_page("PL1")

        assert [c.remote_id for c in page.items] == ["v1"]
        assert ytmusic.get_playlist.call_count == 1

        catalog.fetch_tracks_page("PL1")
        assert ytmusic.get_playlist.call_count == 2

    def test_missing_playlist(self, sleep_recorder):
        """Test a missing playlist is not retried"""
        ytmusic = Mock()
        ytmusic.get_playlist.side_effect = Exception("Playlist does not exist")
        catalog = YouTubeMusicCatalog(ytmusic=ytmusic, sleep=sleep_recorder)

        with pytest.raises(CatalogError) as exc_info:
            catalog.fetch_playlist_metadata("PLgone")
        assert exc_info.value.is_not_found
        assert ytmusic.get_playlist.call_count == 1

    def test_writes_require_auth(self, sleep_recorder):
        """Test writes need an auth file"""
        ytmusic = Mock()
        catalog = YouTubeMusicCatalog(ytmusic=ytmusic, sleep=sleep_recorder)

        with pytest.raises(CatalogError) as exc_info:
            catalog.create_playlist("Road Trip", "")
        assert exc_info.value.is_auth_error
        ytmusic.create_playlist.assert_not_called()

    def test_create_and_add(self, sleep_recorder):
        """Test creating a playlist and adding tracks"""
        ytmusic = Mock()
        ytmusic.create_playlist.return_value = "PLnew"
        ytmusic.add_playlist_items.return_value = {"status": "STATUS_SUCCEEDED"}
        catalog = YouTubeMusicCatalog(auth_file=Path("browser.json"), ytmusic=ytmusic, sleep=sleep_recorder)

        playlist_id = catalog.create_playlist("Road Trip", "Songs")
        catalog.add_tracks_to_playlist(playlist_id, ["v1", "v2"])

        ytmusic.create_playlist.assert_called_once_with("Road Trip", "Songs", privacy_status="PRIVATE")
        ytmusic.add_playlist_items.assert_called_once_with("PLnew", ["v1", "v2"], duplicates=True)

    def test_rejected_add(self, sleep_recorder):
        """Test a failed add status raises"""
        ytmusic = Mock()
        ytmusic.add_playlist_items.return_value = {"status": "STATUS_FAILED"}
        catalog = YouTubeMusicCatalog(auth_file=Path("browser.json"), ytmusic=ytmusic, sleep=sleep_recorder)

        with pytest.raises(CatalogError):
            catalog.add_tracks_to_playlist("PLnew", ["v1"])

    def test_create_without_id(self, sleep_recorder):
        """Test a create response without an id raises"""
        ytmusic = Mock()
        ytmusic.create_playlist.return_value = {"error": "quota"}
        catalog = YouTubeMusicCatalog(auth_file=Path("browser.json"), ytmusic=ytmusic, sleep=sleep_recorder)

        with pytest.raises(CatalogError):
            catalog.create_playlist("Road Trip", "")


class TestWithRetry:
    """Test the shared retry helper"""

    def test_gives_up_after_max_retries(self, sleep_recorder):
        """Test retries stop after the limit"""
        operation = Mock(side_effect=CatalogError("timeout", is_transient=True))

        with pytest.raises(CatalogError):
            with_retry(operation, "op", max_retries=3, sleep=sleep_recorder)

        assert operation.call_count == 3
        assert len(sleep_recorder.calls) == 2
        assert all(delay >= 0.5 for delay in sleep_recorder.calls)

    def test_permanent_error_not_retried(self, sleep_recorder):
        """Test permanent errors are raised at once"""
        operation = Mock(side_effect=CatalogError("bad request"))

        with pytest.raises(CatalogError):
            with_retry(operation, "op", sleep=sleep_recorder)

        assert operation.call_count == 1
        assert sleep_recorder.calls == []
