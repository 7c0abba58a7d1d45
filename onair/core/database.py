"""
Thread-safe SQLite database for onair's played-track history.

Each track seen in the upstream "previous" slot is stored once, keyed by
its stable identity. Rows are never updated after insertion; they only
leave the table through an explicit age-based prune.

Schema:
    schema_version:   Single row holding DATABASE_VERSION
    played_tracks:    One row per track id (metadata + played_at)

Timestamps are stored as fixed-width UTC strings (PLAYED_AT_FORMAT) so
that lexical order equals chronological order.

Usage:
    db = HistoryDatabase(data_dir / "history.db")

    created = db.insert_played_track({"id": ..., "title": ..., ...}, played_at)
    rows = db.get_recent_tracks(limit=10)
    removed = db.delete_played_before(cutoff)
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from onair.core.exceptions import DatabaseError


DATABASE_VERSION = 1
PLAYED_AT_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS played_tracks (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    album TEXT NOT NULL DEFAULT '',
    artwork_url TEXT NOT NULL,
    played_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_played_tracks_played_at ON played_tracks(played_at);
"""


def format_played_at(value: datetime) -> str:
    """Render an aware datetime in the stored UTC format."""
    return value.astimezone(timezone.utc).strftime(PLAYED_AT_FORMAT)


def parse_played_at(value: str) -> datetime:
    """Inverse of format_played_at(); returns an aware UTC datetime."""
    return datetime.strptime(value, PLAYED_AT_FORMAT).replace(tzinfo=timezone.utc)


class HistoryDatabase:
    """
    Thread-safe SQLite store of played tracks.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing and raise
    DatabaseError for any sqlite3 failure.
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

        self._init_database()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        sqlite3.Error raised inside the block is wrapped in DatabaseError.
        """
        try:
            if self._conn is None:
                self._conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=30.0,
                    check_same_thread=False  # We handle thread safety with _lock
                )
                self._conn.row_factory = sqlite3.Row
                self._conn.execute("PRAGMA journal_mode = WAL")
            yield self._conn
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, '_conn') and self._conn is not None:
            try:
                self._conn.close()
            except Exception:
                pass

    def _init_database(self) -> None:
        with self._lock:
            with self._get_connection() as conn:
                conn.executescript(_SCHEMA_SQL)

                cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
                row = cursor.fetchone()

                if row is None:
                    conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
                elif row[0] != DATABASE_VERSION:
                    raise DatabaseError(
                        f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                        details={"expected": DATABASE_VERSION, "actual": row[0]}
                    )
                conn.commit()

    # =========================================================================
    # Played Tracks
    # =========================================================================

    def insert_played_track(self, record: dict[str, Any], played_at: datetime) -> bool:
        """
        Insert a played track unless its id is already stored.

        Args:
            record: Dict with id, title, artist, album, artwork_url.
            played_at: Aware datetime recorded as the play time.

        Returns:
            True if a row was created, False if the id already existed.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    INSERT OR IGNORE INTO played_tracks (id, title, artist, album, artwork_url, played_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    record["id"], record["title"], record["artist"],
                    record.get("album") or "", record["artwork_url"],
                    format_played_at(played_at)
                ))
                conn.commit()
                return cursor.rowcount == 1

    def get_recent_tracks(self, limit: int) -> list[dict[str, Any]]:
        """
        Get the newest played tracks.

        Returns:
            Up to `limit` dicts, newest first. 'played_at' is an aware
            UTC datetime. Rows inserted in the same microsecond keep
            insertion order (newest insert first).
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT id, title, artist, album, artwork_url, played_at
                    FROM played_tracks
                    ORDER BY played_at DESC, seq DESC
                    LIMIT ?
                """, (limit,))
                rows = cursor.fetchall()

        tracks = []
        for row in rows:
            data = dict(row)
            data["played_at"] = parse_played_at(data["played_at"])
            tracks.append(data)
        return tracks

    def delete_played_before(self, cutoff: datetime) -> int:
        """
        Delete every track played strictly before `cutoff`.

        Returns:
            Number of rows removed.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM played_tracks WHERE played_at < ?",
                    (format_played_at(cutoff),)
                )
                conn.commit()
                return cursor.rowcount

    def count_played_tracks(self) -> int:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT COUNT(*) FROM played_tracks")
                return cursor.fetchone()[0]
