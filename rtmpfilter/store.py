"""SQLite-backed playlist and settings store.

Holds the two pieces of persistent state the filter reads: named playlists
(scoped to a course) and the flat filter configuration.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from rtmpfilter.config import get_config_dir
from rtmpfilter.logging import logger
from rtmpfilter.models import PlaylistRecord, PlaylistStoreError

SCHEMA = """
CREATE TABLE IF NOT EXISTS playlist (
    course INTEGER NOT NULL,
    name TEXT NOT NULL,
    list TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (course, name)
);

CREATE TABLE IF NOT EXISTS settings (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def get_store_path() -> Path:
    """Get path to store database."""
    return get_config_dir() / "store.db"


@contextmanager
def get_connection() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection with auto-commit."""
    path = get_store_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=10)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialize database schema."""
    with get_connection() as conn:
        conn.executescript(SCHEMA)
    logger.debug("Store database initialized at {}", get_store_path())


# --- Playlists ---


def get_playlist_record(course_id: int, name: str) -> PlaylistRecord | None:
    """Fetch a playlist by exact (course, name).

    Raises:
        PlaylistStoreError: If the playlist table cannot be read.
    """
    try:
        with get_connection() as conn:
            row = conn.execute(
                "SELECT course, name, list FROM playlist WHERE course = ? AND name = ?",
                (course_id, name),
            ).fetchone()
    except sqlite3.Error as e:
        raise PlaylistStoreError(f"Cannot read playlist {course_id}:{name}: {e}") from e

    if row is None:
        return None
    return PlaylistRecord(course_id=row["course"], name=row["name"], urls=row["list"])


def save_playlist(record: PlaylistRecord) -> None:
    """Insert or replace a playlist."""
    init_db()
    with get_connection() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO playlist (course, name, list) VALUES (?, ?, ?)",
            (record.course_id, record.name, record.urls),
        )
    logger.debug("Saved playlist {}:{} ({} lines)", record.course_id, record.name, len(record.lines))


def delete_playlist(course_id: int, name: str) -> bool:
    """Delete a playlist. Returns True if a row was removed."""
    init_db()
    with get_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM playlist WHERE course = ? AND name = ?", (course_id, name)
        )
        deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("Deleted playlist {}:{}", course_id, name)
    return deleted


def list_playlists(course_id: int | None = None) -> list[PlaylistRecord]:
    """List playlists, optionally restricted to one course, ordered by course and name."""
    init_db()
    with get_connection() as conn:
        if course_id is None:
            rows = conn.execute("SELECT * FROM playlist ORDER BY course, name").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM playlist WHERE course = ? ORDER BY name", (course_id,)
            ).fetchall()
    return [PlaylistRecord(course_id=row["course"], name=row["name"], urls=row["list"]) for row in rows]


# --- Settings ---


def get_settings() -> dict[str, str]:
    """Get all stored settings as raw strings."""
    init_db()
    with get_connection() as conn:
        rows = conn.execute("SELECT name, value FROM settings").fetchall()
    return {row["name"]: row["value"] for row in rows}


def get_setting(name: str) -> str | None:
    """Get one stored setting, or None when unset."""
    return get_settings().get(name)


def set_setting(name: str, value: object) -> None:
    """Store one setting. Booleans are stored as "1"/"0"."""
    if isinstance(value, bool):
        value = "1" if value else "0"
    init_db()
    with get_connection() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO settings (name, value) VALUES (?, ?)", (name, str(value))
        )
    logger.debug("Stored setting {}={}", name, value)


def clear_store() -> int:
    """Delete all playlists and settings. Returns number of rows deleted."""
    init_db()
    with get_connection() as conn:
        total = 0
        for table in ["playlist", "settings"]:
            cursor = conn.execute(f"DELETE FROM {table}")  # noqa: S608
            total += cursor.rowcount
    logger.info("Cleared {} stored entries", total)
    return total
