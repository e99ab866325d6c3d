"""
tarnim — command-line access to the hymn book.

Usage:
    tarnim import song.json          # replace the book with a JSON corpus
    tarnim search 42                 # by hymn number
    tarnim search "نعمة الله"         # by words (diacritics ignored)
    tarnim show 17                   # one song with full lyrics
    tarnim stats
    tarnim --db /tmp/t.db search ...  # use another database file
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from .database import SongDatabase, StorageError
from .importer import InvalidSongEntry, SongImporter
from .search_service import SearchService

# ── terminal helpers ──────────────────────────────────────────────────────────

GREEN  = "\033[0;32m"
YELLOW = "\033[1;33m"
RED    = "\033[0;31m"
CYAN   = "\033[0;36m"
BOLD   = "\033[1m"
DIM    = "\033[2m"
NC     = "\033[0m"


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _fail(msg: str) -> int:
    print(f"{RED}✗{NC} {msg}", file=sys.stderr)
    return 1


# ── subcommands ───────────────────────────────────────────────────────────────

def _cmd_import(db: SongDatabase, args: argparse.Namespace) -> int:
    try:
        count = SongImporter(db).import_from_json(args.json_path)
    except FileNotFoundError as e:
        return _fail(str(e))
    except (InvalidSongEntry, ValueError) as e:
        return _fail(f"Import aborted, book unchanged: {e}")
    print(f"{GREEN}✓{NC} Imported {BOLD}{count}{NC} songs")
    return 0


def _cmd_search(db: SongDatabase, args: argparse.Namespace) -> int:
    results = SearchService(db).search_with_snippets(args.query)
    if not results:
        print(f"{YELLOW}No results.{NC}")
        return 0
    limit = max(args.limit, 0)
    for r in results[:limit]:
        where = "title" if r.is_title_match else f"line {r.match_line_number}"
        print(f"{CYAN}#{r.song.number:<5}{NC} {BOLD}{r.song.title}{NC} {DIM}(id {r.song.id}){NC}")
        print(f"       {r.matching_line}  {DIM}[{where}]{NC}")
    if len(results) > limit:
        print(f"{DIM}... {len(results) - limit} more{NC}")
    return 0


def _cmd_show(db: SongDatabase, args: argparse.Namespace) -> int:
    song = SearchService(db).get_song_by_id(args.song_id)
    if song is None:
        return _fail(f"Song {args.song_id} not found")
    print(f"{CYAN}#{song.number}{NC} {BOLD}{song.title}{NC}")
    print()
    print(song.lyrics)
    return 0


def _cmd_stats(db: SongDatabase, args: argparse.Namespace) -> int:
    summary = db.summary()
    print(f"Songs:            {BOLD}{summary['total_songs']}{NC}")
    print(f"Distinct numbers: {summary['distinct_numbers']}")
    if summary["number_min"] is not None:
        print(f"Number range:     {summary['number_min']}–{summary['number_max']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tarnim", description="Search the hymn book.")
    parser.add_argument("--db", default=None, help="Database file (default: TARNIM_DB_PATH or .data/tarnim.db)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Replace the book with a JSON corpus")
    p_import.add_argument("json_path")
    p_import.set_defaults(func=_cmd_import)

    p_search = sub.add_parser("search", help="Search by number and/or words")
    p_search.add_argument("query", nargs="?", default="")
    p_search.add_argument("--limit", type=int, default=20)
    p_search.set_defaults(func=_cmd_search)

    p_show = sub.add_parser("show", help="Print one song")
    p_show.add_argument("song_id", type=int)
    p_show.set_defaults(func=_cmd_show)

    p_stats = sub.add_parser("stats", help="Library summary")
    p_stats.set_defaults(func=_cmd_stats)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    try:
        with SongDatabase(args.db) as db:
            return args.func(db, args)
    except StorageError as e:
        return _fail(f"Database error: {e}")


if __name__ == "__main__":
    sys.exit(main())
