"""
Search Service for Tarnim

Resolves a raw user query (hymn number, Arabic text, or a mix) against the
song store:

  blank            -> every song, ordered by (number, id)
  digits only      -> exact hymn-number lookup
  anything else    -> normalized phrase search over title + lyrics
  no text hits     -> retry with the first number embedded in the query

No-match outcomes are empty lists, never exceptions.
"""

from typing import Iterable, List, Optional

from loguru import logger

from .database import SongDatabase
from .models import SearchResult, Song
from .normalizer import extract_first_number, is_numeric_only, normalize, parse_number
from .snippets import annotate


class SearchService:
    """Query resolver over a SongDatabase. Never mutates the store."""

    def __init__(self, db: SongDatabase) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def search(self, query: Optional[str]) -> List[Song]:
        """Return the songs matching ``query``, best first."""
        if query is None or not query.strip():
            return self.db.get_all()

        query = query.strip()

        if is_numeric_only(query):
            number = parse_number(query)
            if number is not None:
                songs = self.db.get_by_number(number)
                logger.debug(f"Number lookup {number}: {len(songs)} song(s)")
                return songs

        normalized_query = normalize(query)
        if not normalized_query.strip():
            return []

        songs = self.db.search_text(normalized_query)
        logger.debug(f"Text search {normalized_query!r}: {len(songs)} song(s)")
        if songs:
            return songs

        embedded = extract_first_number(query)
        if embedded is not None:
            songs = self.db.get_by_number(embedded)
            logger.debug(f"Embedded-number fallback {embedded}: {len(songs)} song(s)")
        return songs

    def search_with_snippets(self, query: Optional[str]) -> List[SearchResult]:
        """Like search(), with each song annotated by its matching line."""
        return annotate(self.search(query), query)

    # ------------------------------------------------------------------
    # Direct lookups
    # ------------------------------------------------------------------

    def search_by_number(self, number: int) -> List[Song]:
        return self.db.get_by_number(number)

    def search_by_text(self, text: Optional[str]) -> List[Song]:
        """Phrase search only; no number dispatch and no fallback."""
        normalized_query = normalize(text)
        if not normalized_query.strip():
            return []
        return self.db.search_text(normalized_query)

    def get_all_songs(self) -> List[Song]:
        return self.db.get_all()

    def get_song_by_id(self, song_id: int) -> Optional[Song]:
        return self.db.get_by_id(song_id)

    def get_songs_by_ids(self, song_ids: Iterable[int]) -> List[Song]:
        """
        Resolve externally kept ids (e.g. a recently-viewed list) in order.

        Ids whose song no longer exists are skipped.
        """
        songs = []
        for song_id in song_ids:
            song = self.db.get_by_id(song_id)
            if song is None:
                logger.debug(f"Skipping stale song id {song_id}")
                continue
            songs.append(song)
        return songs

    def get_library_summary(self) -> dict:
        return self.db.summary()
