"""
SQLite Song Store for Tarnim

Owns the persisted song records and the FTS5 index built over their
normalized title and lyrics.

The index is an external-content FTS5 table keyed by ``songs.id``. It is
only ever written inside the same transaction as the ``songs`` row it
mirrors, so no index entry can outlive (or precede) its record.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from loguru import logger

from .config import configured_db_path
from .models import Song
from .normalizer import NUMBER_MAX, NUMBER_MIN


class StorageError(RuntimeError):
    """The storage engine failed (I/O, corruption, schema). Fatal to the current operation."""


MEMORY_PATH = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS songs (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    number            INTEGER NOT NULL,
    title             TEXT NOT NULL,
    lyrics            TEXT NOT NULL,
    normalized_title  TEXT NOT NULL,
    normalized_lyrics TEXT NOT NULL,
    key               TEXT,
    category          TEXT
);

CREATE INDEX IF NOT EXISTS idx_songs_number ON songs(number);

CREATE VIRTUAL TABLE IF NOT EXISTS songs_fts USING fts5(
    normalized_title,
    normalized_lyrics,
    content='songs',
    content_rowid='id'
);
"""

_SELECT_SONG = (
    "SELECT s.id, s.number, s.title, s.lyrics, s.normalized_title, "
    "s.normalized_lyrics, s.key, s.category FROM songs s"
)


def phrase_query(normalized_query: str) -> str:
    """Quote ``normalized_query`` as a single FTS5 phrase."""
    return '"' + normalized_query.replace('"', '""') + '"'


def _row_to_song(row: sqlite3.Row) -> Song:
    return Song(
        id=row["id"],
        number=row["number"],
        title=row["title"],
        lyrics=row["lyrics"],
        normalized_title=row["normalized_title"],
        normalized_lyrics=row["normalized_lyrics"],
        key=row["key"],
        category=row["category"],
    )


class SongDatabase:
    """
    Read-mostly store of songs plus their full-text index.

    One connection is shared behind a lock; every mutating call runs as a
    single transaction across ``songs`` and ``songs_fts``.
    """

    def __init__(self, db_path: Union[str, Path, None] = None) -> None:
        self.database_path: Path = Path(db_path) if db_path is not None else configured_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == MEMORY_PATH

    def connect(self) -> None:
        """Open the database file and create the schema if missing."""
        with self._lock:
            if self._conn is not None:
                return
            try:
                if not self.is_memory:
                    self.database_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info(f"Opening song database at: {self.database_path}")
                conn = sqlite3.connect(str(self.database_path), check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.executescript(_SCHEMA)
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Failed to open song database: {e}")
                raise StorageError(f"Database open failed: {e}") from e
            self._conn = conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                    logger.debug("Song database closed.")
                finally:
                    self._conn = None

    def __enter__(self) -> "SongDatabase":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def delete_database_file(self) -> None:
        """Close the connection and remove the database file (reset helper)."""
        self.close()
        if not self.is_memory and self.database_path.exists():
            self.database_path.unlink()
            logger.info(f"Deleted song database file {self.database_path}")

    @contextmanager
    def _session(self, operation: str, write: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Yield the shared connection, translating engine errors to StorageError.

        With ``write=True`` the body runs in one transaction that is committed
        on success and rolled back on any exception.
        """
        with self._lock:
            self.connect()
            conn = self._conn
            try:
                if write:
                    with conn:
                        yield conn
                else:
                    yield conn
            except sqlite3.Error as e:
                logger.error(f"Database error during {operation}: {e}")
                raise StorageError(f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_row(conn: sqlite3.Connection, song: Song) -> int:
        cur = conn.execute(
            """
            INSERT INTO songs (number, title, lyrics, normalized_title,
                               normalized_lyrics, key, category)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                song.number,
                song.title,
                song.lyrics,
                song.normalized_title,
                song.normalized_lyrics,
                song.key,
                song.category,
            ),
        )
        song_id = cur.lastrowid
        conn.execute(
            """
            INSERT INTO songs_fts (rowid, normalized_title, normalized_lyrics)
            VALUES (?, ?, ?);
            """,
            (song_id, song.normalized_title, song.normalized_lyrics),
        )
        return song_id

    @staticmethod
    def _delete_all_rows(conn: sqlite3.Connection) -> None:
        # Index first: 'delete-all' drops every FTS entry without consulting songs.
        conn.execute("INSERT INTO songs_fts (songs_fts) VALUES ('delete-all');")
        conn.execute("DELETE FROM songs;")

    def insert(self, song: Song) -> Song:
        """
        Persist ``song`` and its index entry; return it with the new id.

        The caller supplies the normalized fields; they are stored as given.
        """
        with self._session("insert", write=True) as conn:
            song_id = self._insert_row(conn, song)
        return song.model_copy(update={"id": song_id})

    def clear_all(self) -> None:
        """Remove every song and every index entry."""
        with self._session("clear_all", write=True) as conn:
            self._delete_all_rows(conn)
        logger.info("Song database cleared.")

    def replace_all(self, songs: Iterable[Song]) -> int:
        """
        Clear the corpus and insert ``songs`` in one transaction.

        Readers on other connections see either the old corpus or the new
        one, never an empty or partial store. Returns the number inserted.
        """
        count = 0
        with self._session("replace_all", write=True) as conn:
            self._delete_all_rows(conn)
            for song in songs:
                self._insert_row(conn, song)
                count += 1
        return count

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def count(self) -> int:
        with self._session("count") as conn:
            return conn.execute("SELECT COUNT(*) FROM songs;").fetchone()[0]

    def get_by_id(self, song_id: int) -> Optional[Song]:
        """Return the song with this id, or None."""
        with self._session("get_by_id") as conn:
            row = conn.execute(f"{_SELECT_SONG} WHERE s.id = ?;", (song_id,)).fetchone()
        return _row_to_song(row) if row is not None else None

    def get_by_number(self, number: int) -> List[Song]:
        """All songs sharing a hymnal number, first-inserted first."""
        if not NUMBER_MIN <= number <= NUMBER_MAX:
            return []
        with self._session("get_by_number") as conn:
            rows = conn.execute(
                f"{_SELECT_SONG} WHERE s.number = ? ORDER BY s.id;", (number,)
            ).fetchall()
        return [_row_to_song(r) for r in rows]

    def search_text(self, normalized_query: str) -> List[Song]:
        """
        Phrase-match ``normalized_query`` against the normalized title and lyrics.

        Results come back in FTS5 rank order (best first), ties by id.
        """
        if not normalized_query or not normalized_query.strip():
            return []
        with self._session("search_text") as conn:
            rows = conn.execute(
                f"""
                {_SELECT_SONG}
                JOIN songs_fts ON songs_fts.rowid = s.id
                WHERE songs_fts MATCH ?
                ORDER BY songs_fts.rank, s.id;
                """,
                (phrase_query(normalized_query),),
            ).fetchall()
        return [_row_to_song(r) for r in rows]

    def get_all(self) -> List[Song]:
        """Every song ordered by (number, id)."""
        with self._session("get_all") as conn:
            rows = conn.execute(f"{_SELECT_SONG} ORDER BY s.number, s.id;").fetchall()
        return [_row_to_song(r) for r in rows]

    def summary(self) -> dict:
        """Counts and number range of the stored corpus."""
        with self._session("summary") as conn:
            row = conn.execute(
                "SELECT COUNT(*), COUNT(DISTINCT number), MIN(number), MAX(number) FROM songs;"
            ).fetchone()
        return {
            "total_songs": row[0],
            "distinct_numbers": row[1],
            "number_min": row[2],
            "number_max": row[3],
        }

    def __repr__(self) -> str:
        status = "open" if self._conn is not None else "closed"
        return f"SongDatabase({status}, path={self.database_path})"
