"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from harmony_sync.catalogs.base import Page, PlaylistMetadata
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.matching.models import Candidate


class SleepRecorder:
    """Stand-in for time.sleep that records the requested delays"""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


class FakeCatalog:
    """In-memory CatalogClient / PlaylistWriter that records every call"""

    def __init__(self, search_results=None, pages=None, metadata=None, missing=()):
        self.search_results = search_results or {}
        self.search_errors = {}
        self.pages = pages or {}
        self.metadata = metadata or {}
        self.missing = set(missing)
        self.metadata_errors = {}

        self.search_calls = []
        self.page_calls = []
        self.metadata_calls = []
        self.created = []
        self.added = []
        self.failing_add_calls = set()

    def search(self, query, limit):
        self.search_calls.append((query, limit))
        if query in self.search_errors:
            raise self.search_errors[query]
        return list(self.search_results.get(query, []))[:limit]

    def fetch_tracks_page(self, playlist_id, cursor=None):
        self.page_calls.append((playlist_id, cursor))
        pages = self.pages[playlist_id]
        page = pages[int(cursor) if cursor else 0]
        if isinstance(page, Exception):
            raise page
        return page

    def fetch_playlist_metadata(self, playlist_id):
        self.metadata_calls.append(playlist_id)
        if playlist_id in self.metadata_errors:
            raise self.metadata_errors[playlist_id]
        if playlist_id in self.missing:
            raise CatalogError(f"Playlist not found: {playlist_id}", is_not_found=True)
        return self.metadata[playlist_id]

    def create_playlist(self, name, description):
        self.created.append((name, description))
        return f"new-{len(self.created)}"

    def add_tracks_to_playlist(self, playlist_id, track_ids):
        call_index = len(self.added)
        self.added.append((playlist_id, list(track_ids)))
        if call_index in self.failing_add_calls:
            raise CatalogError("add rejected", is_transient=True)


def make_candidate(name, artist, remote_id, album="", duration_ms=None):
    return Candidate(name=name, artist=artist, album=album, duration_ms=duration_ms, remote_id=remote_id)


def make_pages(items, page_size):
    """Split items into Pages whose cursors are the next page index"""
    chunks = [tuple(items[i:i + page_size]) for i in range(0, len(items), page_size)] or [()]
    return [
        Page(items=chunk, next_cursor=str(index + 1) if index + 1 < len(chunks) else None)
        for index, chunk in enumerate(chunks)
    ]


def make_metadata(playlist_id, name="Road Trip", description="Songs for the car", track_total=0):
    return PlaylistMetadata(
        remote_id=playlist_id,
        name=name,
        description=description,
        owner="Test User",
        origin="Spotify",
        track_total=track_total,
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def sample_tracks():
    """Five tracks of a source playlist"""
    return [
        make_candidate("Bohemian Rhapsody", "Queen", "spotify:track:1", "A Night at the Opera", 354000),
        make_candidate("Red Nosed (feat. X)", "Artist A", "spotify:track:2", "Winter", 200000),
        make_candidate("Yesterday - Remastered 2009", "The Beatles", "spotify:track:3", "Help!", 125000),
        make_candidate("Halo", "Beyoncé", "spotify:track:4", "I Am... Sasha Fierce", 261000),
        make_candidate("Song 2", "Blur", "spotify:track:5", "Blur", 122000),
    ]


@pytest.fixture
def source_catalog(sample_tracks):
    """Catalog holding one two-page playlist and one missing playlist"""
    return FakeCatalog(
        pages={"pl1": make_pages(sample_tracks, 3)},
        metadata={"pl1": make_metadata("pl1", track_total=len(sample_tracks))},
        missing={"gone"},
    )
