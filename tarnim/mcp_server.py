"""
FastMCP Server for Tarnim

Exposes hymn lookup as MCP tools: search by number or Arabic text, fetch a
song's full lyrics, and (re)import the songs corpus.

To connect to Claude Desktop (stdio), add to claude_desktop_config.json:
{
  "mcpServers": {
    "tarnim": {
      "command": "uv",
      "args": ["run", "--project", "/path/to/tarnim", "python", "-m", "tarnim.mcp_server"],
      "env": {"TARNIM_SONGS_JSON": "/path/to/song.json"}
    }
  }
}

To run over HTTP (SSE):
  python -m tarnim.mcp_server --transport sse [--host 127.0.0.1] [--port 8000]
"""

import signal
import sys
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from loguru import logger

from .database import SongDatabase, StorageError
from .importer import InvalidSongEntry, SongImporter
from .search_service import SearchService

# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------

mcp = FastMCP("Tarnim")

db: Optional[SongDatabase] = None
service: Optional[SearchService] = None
importer: Optional[SongImporter] = None
_initialized = False


async def _ensure_initialized():
    """Lazy-open the database (and auto-import an empty one) on first tool call."""
    global db, service, importer, _initialized
    if _initialized:
        return

    logger.info("Initializing Tarnim MCP server...")
    db = SongDatabase()
    db.connect()
    importer = SongImporter(db)
    try:
        imported = importer.auto_import()
    except ValueError as e:
        logger.error(f"Auto-import failed, continuing with the current store: {e}")
        imported = 0
    except StorageError:
        db.close()
        raise
    if imported:
        logger.info(f"Auto-imported {imported} songs into empty store")
    service = SearchService(db)

    _initialized = True
    logger.info(f"MCP server ready with {db.count()} songs")


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool()
async def search_songs(query: str = "", limit: int = 50) -> List[Dict[str, Any]]:
    """
    Search hymns by number, Arabic text, or both.

    Args:
        query: Hymn number ("42"), words from the title or lyrics (diacritics
               and alef/yaa/taa-marbuta variants are ignored), or a mix such as
               "ترنيمة 42". Empty returns the whole book in number order.
        limit: Maximum results (default 50)

    Returns:
        Matching songs without lyrics (use get_song for the full text).
    """
    await _ensure_initialized()
    songs = service.search(query)
    return [s.to_public_dict(include_lyrics=False) for s in songs[:max(limit, 0)]]


@mcp.tool()
async def search_songs_with_snippets(query: str = "", limit: int = 50) -> List[Dict[str, Any]]:
    """
    Search hymns and return, for each, the lyric line that matched.

    ``match_line_number`` is 1-based; 0 means only the title matched.
    """
    await _ensure_initialized()
    results = service.search_with_snippets(query)
    return [r.to_public_dict() for r in results[:max(limit, 0)]]


@mcp.tool()
async def get_song(song_id: int) -> Dict[str, Any]:
    """
    Get a single song with its full lyrics.

    Args:
        song_id: Store id as returned by the search tools.
    """
    await _ensure_initialized()
    song = service.get_song_by_id(song_id)
    if song is None:
        return {"error": f"Song {song_id} not found"}
    return song.to_public_dict()


@mcp.tool()
async def get_songs_by_number(number: int) -> List[Dict[str, Any]]:
    """Get every arrangement filed under a hymnal number, in insertion order."""
    await _ensure_initialized()
    return [s.to_public_dict() for s in service.search_by_number(number)]


@mcp.tool()
async def get_library_summary() -> Dict[str, Any]:
    """Song count, distinct hymn numbers and the number range of the loaded book."""
    await _ensure_initialized()
    return service.get_library_summary()


@mcp.tool()
async def import_songs_from_json(json_path: str) -> Dict[str, Any]:
    """
    Replace the song book with the contents of a JSON file.

    The file must be a list of {"song_number", "song_title", "song_lyrics"}
    objects. An invalid entry aborts the import and keeps the current book.
    """
    await _ensure_initialized()
    try:
        count = importer.import_from_json(json_path)
    except (FileNotFoundError, InvalidSongEntry, ValueError) as e:
        logger.warning(f"Import from {json_path} rejected: {e}")
        return {"error": str(e)}
    return {"imported": count, "total_songs": db.count()}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP server."""
    import argparse

    def handle_shutdown(sig, frame):
        logger.info("Shutting down MCP server...")
        if db:
            db.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    parser = argparse.ArgumentParser()
    parser.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logger.info("Starting Tarnim MCP Server...")

    if args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
