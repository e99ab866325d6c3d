"""
Bulk import of a songs corpus.

The JSON corpus is a list of objects:
    [{"song_number": "12", "song_title": "...", "song_lyrics": "line 1\\nline 2"}, ...]

Every entry is validated and normalized before the store is touched; the
first invalid entry aborts the whole import and leaves the existing corpus
in place. A valid batch replaces the corpus in a single transaction.
"""

import json
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from loguru import logger
from pydantic import ValidationError

from .config import configured_songs_json
from .database import SongDatabase
from .models import RawSongEntry, Song
from .normalizer import normalize, parse_number


class InvalidSongEntry(ValueError):
    """A raw entry could not be turned into a song (e.g. unparseable number)."""


_NUMBER_RE = re.compile(r"[+-]?[0-9]+")


def parse_song_number(text: Optional[str], position: int) -> int:
    """Parse an entry's number; a missing number counts as 0."""
    if text is None:
        return 0
    candidate = str(text).strip()
    number = parse_number(candidate) if _NUMBER_RE.fullmatch(candidate) else None
    if number is None:
        raise InvalidSongEntry(f"Entry {position}: invalid song number {text!r}")
    return number


def song_from_entry(entry: RawSongEntry, position: int) -> Song:
    """Build an unsaved Song with its normalized fields filled in."""
    title = entry.title or ""
    lyrics = entry.lyrics or ""
    return Song(
        number=parse_song_number(entry.number, position),
        title=title,
        lyrics=lyrics,
        normalized_title=normalize(title),
        normalized_lyrics=normalize(lyrics),
    )


def _coerce_entry(item: Any, position: int) -> RawSongEntry:
    if isinstance(item, RawSongEntry):
        return item
    if not isinstance(item, dict):
        raise InvalidSongEntry(f"Entry {position}: expected an object, got {type(item).__name__}")
    try:
        return RawSongEntry.model_validate(item)
    except ValidationError as e:
        raise InvalidSongEntry(f"Entry {position}: {e}") from e


def load_entries(json_path: Union[str, Path]) -> List[RawSongEntry]:
    """Read a songs JSON file into raw entries (not yet validated for numbers)."""
    path = Path(json_path)
    if not path.exists():
        raise FileNotFoundError(f"Songs JSON file not found: {path}")

    data = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(data, list):
        raise ValueError(f"Songs JSON must be a list of objects, got {type(data).__name__}")
    return [_coerce_entry(item, i) for i, item in enumerate(data, start=1)]


class SongImporter:
    """Normalizes raw entries and loads them into a SongDatabase."""

    def __init__(self, db: SongDatabase) -> None:
        self.db = db

    def import_corpus(self, entries: Iterable[Union[RawSongEntry, dict]]) -> int:
        """
        Replace the stored corpus with ``entries``.

        Returns:
            Number of songs imported. An empty batch imports nothing and
            keeps the existing corpus.

        Raises:
            InvalidSongEntry: on the first entry that cannot be imported.
            StorageError: if the store fails while writing.
        """
        songs = [
            song_from_entry(_coerce_entry(item, i), i)
            for i, item in enumerate(entries, start=1)
        ]
        if not songs:
            logger.warning("Import called with no entries; corpus left unchanged.")
            return 0

        count = self.db.replace_all(songs)
        logger.info(f"Imported {count} songs into {self.db.database_path}")
        return count

    def import_from_json(self, json_path: Union[str, Path]) -> int:
        """Load a songs JSON file and import it."""
        logger.info(f"Importing songs from {json_path}")
        return self.import_corpus(load_entries(json_path))

    def auto_import(self, json_path: Optional[Path] = None) -> int:
        """
        Import the configured corpus if the store is empty.

        Returns the number imported (0 if the store already had songs or no
        corpus file is available).
        """
        if self.db.count() > 0:
            return 0
        path = json_path or configured_songs_json()
        if path is None:
            logger.info("TARNIM_SONGS_JSON not set and store is empty; nothing to import.")
            return 0
        if not path.exists():
            logger.warning(f"Songs JSON not found at {path}, skipping auto-import.")
            return 0
        return self.import_from_json(path)
