"""
Environment configuration for Tarnim.

TARNIM_DB_PATH      SQLite database file (default: <repo>/.data/tarnim.db).
TARNIM_SONGS_JSON   Songs corpus imported automatically when the store is empty.
"""

import os
from pathlib import Path
from typing import Optional


_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DB_PATH = _REPO_ROOT / ".data" / "tarnim.db"


def configured_db_path() -> Path:
    """Return the database path from TARNIM_DB_PATH, or the repo default."""
    env_path = os.environ.get("TARNIM_DB_PATH")
    return Path(env_path) if env_path else DEFAULT_DB_PATH


def configured_songs_json() -> Optional[Path]:
    """Return the auto-import corpus path from TARNIM_SONGS_JSON, or None if not configured."""
    env_path = os.environ.get("TARNIM_SONGS_JSON")
    return Path(env_path) if env_path else None
