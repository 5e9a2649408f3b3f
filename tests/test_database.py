# tests/test_database.py
"""Test the SQLite playlist store"""

import dataclasses

import pytest

from harmony_sync.core.database import PlaylistStore
from harmony_sync.core.exceptions import DatabaseError, ValidationError
from harmony_sync.sync.cache import ResolutionCacheEntry
from tests.conftest import make_candidate, make_metadata


@pytest.fixture
def store(temp_dir):
    store = PlaylistStore(temp_dir / "playlists.db")
    yield store
    store.close()


@pytest.fixture
def loaded_entry(sample_tracks):
    return ResolutionCacheEntry.loaded(make_metadata("pl1", track_total=5), sample_tracks)


class TestPersist:
    """Test writing resolved playlists"""

    def test_persist_and_read_back(self, store, loaded_entry):
        """Test storing and reading a playlist"""
        store.persist_resolved_playlist(loaded_entry)

        playlist = store.get_playlist("pl1")

        assert playlist["name"] == "Road Trip"
        assert playlist["owner"] == "Test User"
        assert playlist["track_count"] == 5
        assert playlist["duration_ms"] == loaded_entry.total_duration_ms
        assert [t["remote_id"] for t in playlist["tracks"]] == [f"spotify:track:{i}" for i in range(1, 6)]
        assert playlist["tracks"][3]["artist"] == "Beyoncé"

    def test_persist_replaces_tracks(self, store, loaded_entry):
        """Test persisting again replaces the track list"""
        store.persist_resolved_playlist(loaded_entry)
        shorter = ResolutionCacheEntry.loaded(
            make_metadata("pl1", name="Road Trip 2"),
            [make_candidate("Song 2", "Blur", "spotify:track:5")]
        )

        store.persist_resolved_playlist(shorter)

        playlist = store.get_playlist("pl1")
        assert playlist["name"] == "Road Trip 2"
        assert [t["remote_id"] for t in playlist["tracks"]] == ["spotify:track:5"]
        assert len(store.get_all_playlists()) == 1

    def test_tracks_shared_between_playlists(self, store, loaded_entry):
        """Test tracks are stored once across playlists"""
        store.persist_resolved_playlist(loaded_entry)
        other = ResolutionCacheEntry.loaded(
            make_metadata("pl2", name="Another"),
            [make_candidate("Halo", "Beyoncé", "spotify:track:4")]
        )
        store.persist_resolved_playlist(other)

        assert store.playlist_exists("pl2")
        assert [p["remote_id"] for p in store.get_all_playlists()] == ["pl2", "pl1"]

    def test_unknown_playlist(self, store):
        """Test reading an unknown playlist"""
        assert store.get_playlist("missing") is None
        assert not store.playlist_exists("missing")


class TestValidation:
    """Test rejected entries"""

    def test_not_loaded(self, store):
        """Test only LOADED entries are accepted"""
        with pytest.raises(ValidationError) as exc_info:
            store.persist_resolved_playlist(ResolutionCacheEntry.not_found("gone"))
        assert exc_info.value.details["field"] == "status"

    def test_empty_playlist_name(self, store, sample_tracks):
        """Test a blank playlist name is rejected"""
        entry = ResolutionCacheEntry.loaded(make_metadata("pl1", name="  "), sample_tracks)
        with pytest.raises(ValidationError):
            store.persist_resolved_playlist(entry)

    def test_track_without_artist(self, store):
        """Test a track without artist is rejected"""
        entry = ResolutionCacheEntry.loaded(make_metadata("pl1"), [make_candidate("Song", "", "t1")])
        with pytest.raises(ValidationError) as exc_info:
            store.persist_resolved_playlist(entry)
        assert exc_info.value.details["field"] == "artist"

    def test_negative_count(self, store, loaded_entry):
        """Test a negative track count is rejected"""
        entry = dataclasses.replace(loaded_entry, track_count=-1)
        with pytest.raises(ValidationError):
            store.persist_resolved_playlist(entry)
        assert store.get_playlist("pl1") is None


class TestInitialization:
    """Test opening the database"""

    def test_missing_parent_directory(self, temp_dir):
        """Test opening a database in a missing directory"""
        with pytest.raises(DatabaseError):
            PlaylistStore(temp_dir / "nope" / "playlists.db")

    def test_reopen_existing(self, temp_dir, loaded_entry):
        """Test reopening keeps stored playlists"""
        first = PlaylistStore(temp_dir / "playlists.db")
        first.persist_resolved_playlist(loaded_entry)
        first.close()

        second = PlaylistStore(temp_dir / "playlists.db")
        try:
            assert second.playlist_exists("pl1")
        finally:
            second.close()
