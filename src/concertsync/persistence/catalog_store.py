"""SQLite-backed catalog of shows, recordings and the show search index.

The importer treats this store as an opaque collaborator: it only needs the
bulk-insert, count and delete operations. The remaining queries serve the CLI
and the library-membership updates made outside the import pipeline.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from ..models import RecordingRecord, ShowRecord
from ..utils import now_millis

if TYPE_CHECKING:
    from collections.abc import Sequence

LOGGER = logging.getLogger(__name__)

_SCHEMA_ERROR_MARKERS = ("no such table", "no such column", "has no column named", "values were supplied")

_SHOW_COLUMNS = (
    "show_id",
    "date",
    "year",
    "month",
    "year_month",
    "band",
    "url",
    "venue_name",
    "city",
    "state",
    "country",
    "location_raw",
    "setlist_status",
    "setlist_raw",
    "song_list",
    "lineup_status",
    "lineup_raw",
    "member_list",
    "show_sequence",
    "recordings_raw",
    "recording_count",
    "best_recording_id",
    "average_rating",
    "total_reviews",
    "is_in_library",
    "library_added_at",
    "created_at",
    "updated_at",
)

_RECORDING_COLUMNS = (
    "identifier",
    "show_id",
    "source_type",
    "source_type_raw",
    "rating",
    "raw_rating",
    "review_count",
    "confidence",
    "high_ratings",
    "low_ratings",
    "taper",
    "source",
    "lineage",
    "collection_timestamp",
)


class SchemaMismatchError(RuntimeError):
    """The on-disk schema does not match what the catalog expects.

    Recover by calling :meth:`CatalogStore.delete_database_file`.
    """


def _is_schema_error(exc: sqlite3.Error) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _SCHEMA_ERROR_MARKERS)


def _fts_query(query: str) -> str:
    terms = query.replace('"', " ").split()
    return " ".join(f'"{term}"' for term in terms)


class CatalogStore:
    """SQLite store for the offline show catalog.

    Uses WAL mode and one connection per thread, like the rest of the
    persistence layer. Inserts are transactional per call, so a failure on
    batch N leaves batches 1..N-1 committed.

    Example:
        store = CatalogStore(Path("~/.local/share/concertsync/catalog.db"))
        store.insert_shows(shows, [(show.show_id, text) for show, text in rows])
        store.get_show_count()
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with the given database path.

        Args:
            db_path: Path to the SQLite database file
        """
        self._db_path = db_path
        self._local = threading.local()
        self._init_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection for the current thread."""
        if not hasattr(self._local, "connection") or self._local.connection is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.connection = sqlite3.connect(self._db_path)
            self._local.connection.execute("PRAGMA journal_mode=WAL")
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
        row = cursor.fetchone()
        current_version = row["version"] if row else 0

        if current_version < self.SCHEMA_VERSION:
            self._migrate_schema(current_version)
        elif current_version > self.SCHEMA_VERSION:
            LOGGER.warning(
                "Catalog %s has schema v%d, newer than supported v%d",
                self._db_path,
                current_version,
                self.SCHEMA_VERSION,
            )

    def _migrate_schema(self, from_version: int) -> None:
        conn = self._get_connection()

        if from_version < 1:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS shows (
                    show_id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    year INTEGER NOT NULL,
                    month INTEGER NOT NULL,
                    year_month TEXT NOT NULL,
                    band TEXT NOT NULL,
                    url TEXT,
                    venue_name TEXT NOT NULL,
                    city TEXT,
                    state TEXT,
                    country TEXT NOT NULL,
                    location_raw TEXT,
                    setlist_status TEXT,
                    setlist_raw TEXT,
                    song_list TEXT,
                    lineup_status TEXT,
                    lineup_raw TEXT,
                    member_list TEXT,
                    show_sequence INTEGER NOT NULL DEFAULT 1,
                    recordings_raw TEXT,
                    recording_count INTEGER NOT NULL DEFAULT 0,
                    best_recording_id TEXT,
                    average_rating REAL,
                    total_reviews INTEGER NOT NULL DEFAULT 0,
                    is_in_library INTEGER NOT NULL DEFAULT 0,
                    library_added_at INTEGER,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_shows_date ON shows(date)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_shows_year_month ON shows(year_month)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_shows_library ON shows(is_in_library)")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS recordings (
                    identifier TEXT NOT NULL,
                    show_id TEXT NOT NULL,
                    source_type TEXT,
                    source_type_raw TEXT,
                    rating REAL NOT NULL DEFAULT 0,
                    raw_rating REAL NOT NULL DEFAULT 0,
                    review_count INTEGER NOT NULL DEFAULT 0,
                    confidence REAL NOT NULL DEFAULT 0,
                    high_ratings INTEGER NOT NULL DEFAULT 0,
                    low_ratings INTEGER NOT NULL DEFAULT 0,
                    taper TEXT,
                    source TEXT,
                    lineage TEXT,
                    collection_timestamp INTEGER NOT NULL,
                    PRIMARY KEY (identifier, show_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_recordings_show ON recordings(show_id)")
            conn.execute("""
                CREATE VIRTUAL TABLE IF NOT EXISTS show_search
                USING fts4(show_id, search_text)
            """)

        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,))
        conn.commit()

    # Bulk import ---------------------------------------------------------

    def insert_shows(self, shows: Sequence[ShowRecord], search_rows: Sequence[tuple[str, str]] = ()) -> None:
        """Insert or replace a batch of shows and their search rows in one transaction.

        Raises:
            SchemaMismatchError: If the tables do not have the expected shape
        """
        placeholders = ", ".join("?" for _ in _SHOW_COLUMNS)
        show_sql = f"INSERT OR REPLACE INTO shows ({', '.join(_SHOW_COLUMNS)}) VALUES ({placeholders})"
        conn = self._get_connection()
        try:
            with conn:
                conn.executemany(show_sql, [self._show_params(show) for show in shows])
                if search_rows:
                    conn.executemany(
                        "DELETE FROM show_search WHERE show_id = ?",
                        [(show_id,) for show_id, _ in search_rows],
                    )
                    conn.executemany(
                        "INSERT INTO show_search (show_id, search_text) VALUES (?, ?)",
                        list(search_rows),
                    )
        except sqlite3.OperationalError as exc:
            if _is_schema_error(exc):
                raise SchemaMismatchError(f"Show table does not match expected schema: {exc}") from exc
            raise

    def insert_recordings(self, recordings: Sequence[RecordingRecord]) -> None:
        """Insert or replace a batch of recordings in one transaction.

        Raises:
            SchemaMismatchError: If the tables do not have the expected shape
        """
        placeholders = ", ".join("?" for _ in _RECORDING_COLUMNS)
        sql = f"INSERT OR REPLACE INTO recordings ({', '.join(_RECORDING_COLUMNS)}) VALUES ({placeholders})"
        conn = self._get_connection()
        try:
            with conn:
                conn.executemany(sql, [self._recording_params(rec) for rec in recordings])
        except sqlite3.OperationalError as exc:
            if _is_schema_error(exc):
                raise SchemaMismatchError(f"Recording table does not match expected schema: {exc}") from exc
            raise

    @staticmethod
    def _show_params(show: ShowRecord) -> tuple:
        values = [getattr(show, column) for column in _SHOW_COLUMNS]
        values[_SHOW_COLUMNS.index("is_in_library")] = 1 if show.is_in_library else 0
        return tuple(values)

    @staticmethod
    def _recording_params(recording: RecordingRecord) -> tuple:
        return tuple(getattr(recording, column) for column in _RECORDING_COLUMNS)

    # Counts and deletes --------------------------------------------------

    def get_show_count(self) -> int:
        row = self._get_connection().execute("SELECT COUNT(*) FROM shows").fetchone()
        return int(row[0])

    def get_recording_count(self) -> int:
        row = self._get_connection().execute("SELECT COUNT(*) FROM recordings").fetchone()
        return int(row[0])

    def delete_all_shows(self) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute("DELETE FROM shows")
            conn.execute("DELETE FROM show_search")

    def delete_all_recordings(self) -> None:
        conn = self._get_connection()
        with conn:
            conn.execute("DELETE FROM recordings")

    def delete_database_file(self) -> bool:
        """Delete the database file (and WAL side files) and recreate the schema.

        Used to recover from schema mismatches. If the files cannot be removed,
        falls back to clearing the tables. Always reports success so a reset
        never blocks the caller.
        """
        self.close()
        targets = [self._db_path]
        targets.extend(self._db_path.with_name(self._db_path.name + suffix) for suffix in ("-wal", "-shm"))
        try:
            for target in targets:
                if target.exists():
                    target.unlink()
            LOGGER.info("Deleted catalog database %s", self._db_path)
            self._init_db()
        except (OSError, sqlite3.Error) as exc:
            LOGGER.warning("Could not delete catalog database %s (%s); clearing tables instead", self._db_path, exc)
            self._clear_tables()
        return True

    def _clear_tables(self) -> None:
        try:
            self.close()
            self._init_db()
            self.delete_all_shows()
            self.delete_all_recordings()
        except sqlite3.Error as exc:
            LOGGER.error("Failed to clear catalog tables in %s: %s", self._db_path, exc)

    # Queries -------------------------------------------------------------

    def get_show(self, show_id: str) -> ShowRecord | None:
        row = self._get_connection().execute("SELECT * FROM shows WHERE show_id = ?", (show_id,)).fetchone()
        return self._row_to_show(row) if row else None

    def get_recordings_for_show(self, show_id: str) -> list[RecordingRecord]:
        cursor = self._get_connection().execute(
            "SELECT * FROM recordings WHERE show_id = ? ORDER BY rating DESC, identifier",
            (show_id,),
        )
        return [self._row_to_recording(row) for row in cursor]

    def search_shows(self, query: str, limit: int = 50) -> list[ShowRecord]:
        """Full-text search over the show search index, in date order."""
        match = _fts_query(query)
        if not match:
            return []
        cursor = self._get_connection().execute(
            """
            SELECT shows.* FROM show_search
            JOIN shows ON shows.show_id = show_search.show_id
            WHERE show_search MATCH ?
            ORDER BY shows.date
            LIMIT ?
            """,
            (match, limit),
        )
        return [self._row_to_show(row) for row in cursor]

    def set_library_membership(self, show_id: str, in_library: bool) -> bool:
        """Mark a show as added to / removed from the user's library.

        Returns:
            True if the show exists and was updated
        """
        now = now_millis()
        conn = self._get_connection()
        with conn:
            cursor = conn.execute(
                """
                UPDATE shows
                SET is_in_library = ?, library_added_at = ?, updated_at = ?
                WHERE show_id = ?
                """,
                (1 if in_library else 0, now if in_library else None, now, show_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_show(row: sqlite3.Row) -> ShowRecord:
        values = {column: row[column] for column in _SHOW_COLUMNS}
        values["is_in_library"] = bool(values["is_in_library"])
        return ShowRecord(**values)

    @staticmethod
    def _row_to_recording(row: sqlite3.Row) -> RecordingRecord:
        return RecordingRecord(**{column: row[column] for column in _RECORDING_COLUMNS})

    def close(self) -> None:
        """Close the database connection for the current thread."""
        if hasattr(self._local, "connection") and self._local.connection is not None:
            self._local.connection.close()
            self._local.connection = None
