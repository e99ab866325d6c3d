"""
Snippet extraction: pick the line of each song that best shows why it matched.

Precedence per song:
  1. first lyric line whose normalized form contains the normalized query
     (1-based line number)
  2. the title, when only the title matches (line number 0, tagged)
  3. the first non-blank lyric line (line number 1)
"""

from typing import Iterable, List, Optional, Tuple

from .models import TITLE_MATCH_PREFIX, SearchResult, Song
from .normalizer import normalize


def first_line(lyrics: Optional[str]) -> str:
    """First non-blank line of ``lyrics``, trimmed ("" if there is none)."""
    if not lyrics or not lyrics.strip():
        return ""
    for line in lyrics.split("\n"):
        trimmed = line.strip()
        if trimmed:
            return trimmed
    return ""


def find_match(song: Song, needle: str) -> Optional[Tuple[str, int]]:
    """
    Locate ``needle`` (already normalized and casefolded) in a song.

    Returns (display line, line number) or None when neither the lyrics
    nor the title contain it.
    """
    for i, line in enumerate(song.lines()):
        if needle in normalize(line).casefold():
            return line.strip(), i + 1
    if needle in normalize(song.title).casefold():
        return f"{TITLE_MATCH_PREFIX}{song.title}", 0
    return None


def annotate(songs: Iterable[Song], raw_query: Optional[str]) -> List[SearchResult]:
    """Wrap each song in a SearchResult carrying its matching line."""
    query = raw_query or ""
    needle = normalize(query.strip()).casefold()

    results: List[SearchResult] = []
    for song in songs:
        match = find_match(song, needle) if needle else None
        if match is None:
            match = (first_line(song.lyrics), 1)
        line, line_number = match
        results.append(SearchResult(
            song=song,
            query=query,
            matching_line=line,
            match_line_number=line_number,
        ))
    return results
