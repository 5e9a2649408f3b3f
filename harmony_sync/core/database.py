"""
Thread-safe SQLite store for resolved playlists.

PlaylistStore is the persistence sink of the resolution cache: every
playlist loaded from a catalog is written here so that the library can be
browsed (and transferred) without hitting the remote API again.

Tracks follow a global registry pattern: each unique track id is stored
once in `tracks` and linked to playlists through `playlist_tracks`.

Schema:
    playlists:        Playlist header (remote_id, name, owner, origin, ...)
    tracks:           One row per unique track remote_id
    playlist_tracks:  Junction table (playlist_id, track_id, position)

Usage:
    store = PlaylistStore(output_dir / "playlists.db")
    store.persist_resolved_playlist(entry)
    playlist = store.get_playlist(entry.remote_id)
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generator

from harmony_sync.core.exceptions import DatabaseError, ValidationError

if TYPE_CHECKING:
    from harmony_sync.sync.cache import ResolutionCacheEntry


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS playlists (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    owner TEXT,
    origin TEXT,
    description TEXT,
    image_url TEXT,
    track_count INTEGER NOT NULL,
    duration_ms INTEGER NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS tracks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL,
    artist TEXT NOT NULL,
    album TEXT,
    duration_ms INTEGER
);

CREATE TABLE IF NOT EXISTS playlist_tracks (
    playlist_id INTEGER NOT NULL,
    track_id INTEGER NOT NULL,
    position INTEGER NOT NULL,
    FOREIGN KEY (playlist_id) REFERENCES playlists(id) ON DELETE CASCADE,
    FOREIGN KEY (track_id) REFERENCES tracks(id) ON DELETE CASCADE,
    PRIMARY KEY (playlist_id, track_id)
);

CREATE INDEX IF NOT EXISTS idx_playlist_tracks_playlist ON playlist_tracks(playlist_id);
"""


def validate_entry(entry: "ResolutionCacheEntry") -> None:
    """
    Check that a cache entry can be stored.

    Only LOADED entries with metadata are storable. Header strings must be
    strings, counts must be non-negative integers, and every track needs a
    non-empty name and artist.

    Raises:
        ValidationError: Naming the first offending field.
    """
    if not entry.is_loaded or entry.metadata is None:
        raise ValidationError(
            f"Only loaded playlists can be stored (status: {entry.status.value})",
            details={"playlist_id": entry.remote_id, "field": "status"}
        )

    metadata = entry.metadata
    for field_name in ("remote_id", "name", "description", "owner", "origin"):
        if not isinstance(getattr(metadata, field_name), str):
            raise ValidationError(
                f"Invalid type for playlist {field_name}",
                details={"playlist_id": entry.remote_id, "field": field_name}
            )
    if not metadata.name.strip():
        raise ValidationError(
            "Playlist name must not be empty",
            details={"playlist_id": entry.remote_id, "field": "name"}
        )

    for field_name in ("track_count", "total_duration_ms"):
        value = getattr(entry, field_name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                f"Invalid value for {field_name}: {value!r}",
                details={"playlist_id": entry.remote_id, "field": field_name}
            )

    for track_id, record in entry.tracks.items():
        if not isinstance(record.name, str) or not record.name.strip():
            raise ValidationError(
                "Track name must be a non-empty string",
                details={"playlist_id": entry.remote_id, "track_id": track_id, "field": "name"}
            )
        if not isinstance(record.artist, str) or not record.artist.strip():
            raise ValidationError(
                "Track artist must be a non-empty string",
                details={"playlist_id": entry.remote_id, "track_id": track_id, "field": "artist"}
            )
        if record.duration_ms is not None and not isinstance(record.duration_ms, int):
            raise ValidationError(
                "Track duration must be an integer number of milliseconds",
                details={"playlist_id": entry.remote_id, "track_id": track_id, "field": "duration_ms"}
            )


class PlaylistStore:
    """
    SQLite-backed PersistenceSink.

    Uses a single persistent connection guarded by a lock; every public
    method acquires self._lock before touching it.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield the persistent connection, creating it on first use."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # guarded by _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        yield self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    # =========================================================================
    # Writes
    # =========================================================================

    def persist_resolved_playlist(self, entry: "ResolutionCacheEntry") -> None:
        """
        Store (or replace) a resolved playlist and its tracks.

        Raises:
            ValidationError: If the entry fails validate_entry().
            DatabaseError: If SQLite rejects the write; nothing is committed.
        """
        validate_entry(entry)
        metadata = entry.metadata

        with self._lock:
            with self._get_connection() as conn:
                try:
                    conn.execute("""
                        INSERT INTO playlists (
                            remote_id, name, owner, origin, description, image_url,
                            track_count, duration_ms, updated_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(remote_id) DO UPDATE SET
                            name = excluded.name,
                            owner = excluded.owner,
                            origin = excluded.origin,
                            description = excluded.description,
                            image_url = excluded.image_url,
                            track_count = excluded.track_count,
                            duration_ms = excluded.duration_ms,
                            updated_at = excluded.updated_at
                    """, (
                        metadata.remote_id, metadata.name, metadata.owner, metadata.origin,
                        metadata.description, metadata.image_url,
                        entry.track_count, entry.total_duration_ms, self._now_iso()
                    ))
                    playlist_db_id = conn.execute(
                        "SELECT id FROM playlists WHERE remote_id = ?", (metadata.remote_id,)
                    ).fetchone()[0]

                    conn.execute("DELETE FROM playlist_tracks WHERE playlist_id = ?", (playlist_db_id,))

                    for position, record in enumerate(entry.tracks.values(), start=1):
                        conn.execute("""
                            INSERT INTO tracks (remote_id, name, artist, album, duration_ms)
                            VALUES (?, ?, ?, ?, ?)
                            ON CONFLICT(remote_id) DO UPDATE SET
                                name = excluded.name,
                                artist = excluded.artist,
                                album = excluded.album,
                                duration_ms = excluded.duration_ms
                        """, (record.remote_id, record.name, record.artist, record.album, record.duration_ms))
                        track_db_id = conn.execute(
                            "SELECT id FROM tracks WHERE remote_id = ?", (record.remote_id,)
                        ).fetchone()[0]
                        conn.execute(
                            "INSERT INTO playlist_tracks (playlist_id, track_id, position) VALUES (?, ?, ?)",
                            (playlist_db_id, track_db_id, position)
                        )
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise DatabaseError(
                        f"Failed to store playlist {metadata.remote_id}: {e}",
                        details={"playlist_id": metadata.remote_id, "original_error": str(e)}
                    ) from e

    # =========================================================================
    # Reads
    # =========================================================================

    def get_playlist(self, remote_id: str) -> dict[str, Any] | None:
        """Return a stored playlist with its ordered 'tracks', or None."""
        with self._lock:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM playlists WHERE remote_id = ?", (remote_id,)
                ).fetchone()
                if row is None:
                    return None

                playlist = dict(row)
                cursor = conn.execute("""
                    SELECT t.remote_id, t.name, t.artist, t.album, t.duration_ms
                    FROM tracks t
                    JOIN playlist_tracks pt ON t.id = pt.track_id
                    WHERE pt.playlist_id = ?
                    ORDER BY pt.position
                """, (playlist.pop("id"),))
                playlist["tracks"] = [dict(track) for track in cursor.fetchall()]
                return playlist

    def get_all_playlists(self) -> list[dict[str, Any]]:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT remote_id, name, owner, origin, track_count, duration_ms, updated_at
                    FROM playlists ORDER BY name
                """)
                return [dict(row) for row in cursor.fetchall()]

    def playlist_exists(self, remote_id: str) -> bool:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT 1 FROM playlists WHERE remote_id = ?", (remote_id,))
                return cursor.fetchone() is not None
