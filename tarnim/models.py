"""
Data Models for Tarnim

Song records as persisted by the store, the ephemeral search result that
wraps a song with its matching line, and the raw entry shape fed into a
bulk import.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


TITLE_MATCH_PREFIX = "🏷️ "


# ---------------------------------------------------------------------------
# Song models
# ---------------------------------------------------------------------------

class Song(BaseModel):
    """A hymn as stored in the database."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(0, description="Store-assigned row id (0 until inserted)")
    number: int = Field(..., description="Hymnal book number; not unique")
    title: str = Field("", description="Display title (may carry tashkeel)")
    lyrics: str = Field("", description="Display lyrics, lines separated by '\\n'")
    normalized_title: str = Field("", description="normalize(title), computed at write time")
    normalized_lyrics: str = Field("", description="normalize(lyrics), computed at write time")
    key: Optional[str] = Field(None, description="Musical key (e.g. 'Fm', 'G')")
    category: Optional[str] = Field(None, description="Category (e.g. 'Praise', 'Hymn')")

    def lines(self) -> list[str]:
        return self.lyrics.split("\n")

    def to_public_dict(self, include_lyrics: bool = True) -> dict:
        """Display fields only; the normalized forms stay internal."""
        data = self.model_dump(exclude={"normalized_title", "normalized_lyrics"})
        if not include_lyrics:
            data.pop("lyrics")
        return data


class SearchResult(BaseModel):
    """A song paired with the line that best matched the query."""

    song: Song
    query: str = ""
    matching_line: str = ""
    match_line_number: int = Field(
        0, ge=0, description="1-based lyric line; 0 means the title matched"
    )

    @property
    def is_title_match(self) -> bool:
        return self.match_line_number == 0

    def to_public_dict(self) -> dict:
        return {
            **self.song.to_public_dict(include_lyrics=False),
            "matching_line": self.matching_line,
            "match_line_number": self.match_line_number,
            "title_match": self.is_title_match,
        }


# ---------------------------------------------------------------------------
# Import models
# ---------------------------------------------------------------------------

class RawSongEntry(BaseModel):
    """
    One entry of a songs JSON corpus, before validation and normalization.

    Mirrors the on-disk keys (``song_number``, ``song_title``, ``song_lyrics``);
    the number stays text here and is parsed during import.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    number: Optional[str] = Field(None, alias="song_number")
    title: Optional[str] = Field(None, alias="song_title")
    lyrics: Optional[str] = Field(None, alias="song_lyrics")
