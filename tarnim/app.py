"""
FastAPI Web Application for Tarnim

Endpoints:
  GET  /api/library/stats         - Song count and number range
  GET  /api/songs                 - Search/list songs (?search=, ?limit=)
  GET  /api/songs/{id}            - One song with full lyrics
  GET  /api/search                - Search with matching-line snippets (?q=)
  POST /api/import                - Replace the song book from a JSON file
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from .database import SongDatabase
from .importer import InvalidSongEntry, SongImporter
from .search_service import SearchService

# ---------------------------------------------------------------------------
# Singletons (created in lifespan so TARNIM_DB_PATH is read at startup)
# ---------------------------------------------------------------------------

db: Optional[SongDatabase] = None
service: Optional[SearchService] = None
importer: Optional[SongImporter] = None


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    global db, service, importer

    # Startup
    db = SongDatabase()
    db.connect()
    importer = SongImporter(db)
    importer.auto_import()
    service = SearchService(db)
    logger.info(f"Tarnim ready. {db.count()} songs loaded.")

    yield

    # Shutdown
    db.close()


app = FastAPI(title="Tarnim", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ImportRequest(BaseModel):
    json_path: str


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/api/library/stats")
async def library_stats():
    return JSONResponse(service.get_library_summary())


@app.get("/api/songs")
async def list_songs(search: Optional[str] = None, limit: int = Query(100, ge=1, le=1000)):
    """Search/list songs; no search string lists the whole book."""
    songs = service.search(search or "")
    return JSONResponse([
        s.to_public_dict(include_lyrics=False) for s in songs[:limit]
    ])


@app.get("/api/songs/{song_id}")
async def get_song(song_id: int):
    song = service.get_song_by_id(song_id)
    if song is None:
        raise HTTPException(status_code=404, detail=f"Song {song_id} not found")
    return JSONResponse(song.to_public_dict())


@app.get("/api/search")
async def search(q: str = "", limit: int = Query(100, ge=1, le=1000)):
    results = service.search_with_snippets(q)
    return JSONResponse([r.to_public_dict() for r in results[:limit]])


@app.post("/api/import")
async def import_songs(req: ImportRequest):
    try:
        count = importer.import_from_json(req.json_path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidSongEntry, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse({"imported": count, "total_songs": db.count()})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
