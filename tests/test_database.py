"""Unit tests for the SQLite song store and its FTS5 index."""

import pytest
from tarnim.database import SongDatabase, StorageError, phrase_query
from tarnim.models import Song
from tarnim.normalizer import normalize


def make_song(number, title, lyrics="", key=None, category=None):
    return Song(
        number=number,
        title=title,
        lyrics=lyrics,
        normalized_title=normalize(title),
        normalized_lyrics=normalize(lyrics),
        key=key,
        category=category,
    )


@pytest.fixture
def db(tmp_path):
    database = SongDatabase(tmp_path / "songs.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def loaded_db(db):
    db.insert(make_song(42, "يا رَبُّ ارحمنا", "يا ربُّ ارحمنا\nواسمع صلاتنا"))
    db.insert(make_song(1, "نِعْمَةُ اللهِ", "نعمة الله عظيمة\nتفوق كل فكر\nآمين"))
    db.insert(make_song(42, "يا رب ارحمنا (لحن ثان)", "ارحمنا يا رب\nفي كل حين"))
    db.insert(make_song(7, "المزمور الثالث والعشرون", "الرب راعيَّ\nفلا يعوزني شيء"))
    return db


# ---------------------------------------------------------------------------
# Insert / lookup
# ---------------------------------------------------------------------------

class TestInsertAndLookup:
    def test_insert_assigns_increasing_ids(self, db):
        a = db.insert(make_song(1, "أ"))
        b = db.insert(make_song(1, "ب"))
        assert a.id > 0
        assert b.id > a.id

    def test_round_trip(self, db):
        original = make_song(12, "نِعْمَةُ اللهِ", "سطر أول\nسطر ثانٍ", key="Fm", category="Praise")
        saved = db.insert(original)

        loaded = db.get_by_id(saved.id)
        assert loaded is not None
        assert loaded == saved
        assert loaded.title == original.title
        assert loaded.lyrics == original.lyrics
        assert loaded.number == 12
        assert loaded.key == "Fm"
        assert loaded.category == "Praise"
        assert loaded.normalized_title == normalize(original.title)
        assert loaded.normalized_lyrics == normalize(original.lyrics)

    def test_get_by_id_missing(self, loaded_db):
        assert loaded_db.get_by_id(9999) is None

    def test_count(self, loaded_db):
        assert loaded_db.count() == 4

    def test_get_by_number_insertion_order(self, loaded_db):
        songs = loaded_db.get_by_number(42)
        assert [s.title for s in songs] == ["يا رَبُّ ارحمنا", "يا رب ارحمنا (لحن ثان)"]
        assert songs[0].id < songs[1].id

    def test_get_by_number_missing(self, loaded_db):
        assert loaded_db.get_by_number(500) == []

    def test_get_by_number_out_of_range(self, loaded_db):
        assert loaded_db.get_by_number(10 ** 20) == []
        assert loaded_db.get_by_number(-(10 ** 20)) == []

    def test_get_all_ordered_by_number_then_id(self, loaded_db):
        songs = loaded_db.get_all()
        assert [s.number for s in songs] == [1, 7, 42, 42]
        assert songs[2].id < songs[3].id


# ---------------------------------------------------------------------------
# Full-text search
# ---------------------------------------------------------------------------

class TestSearchText:
    def test_phrase_in_lyrics(self, loaded_db):
        songs = loaded_db.search_text(normalize("تفوق كل فكر"))
        assert [s.number for s in songs] == [1]

    def test_phrase_in_title(self, loaded_db):
        songs = loaded_db.search_text(normalize("الثالث والعشرون"))
        assert [s.number for s in songs] == [7]

    def test_phrase_requires_adjacency_and_order(self, loaded_db):
        in_order = loaded_db.search_text(normalize("ارحمنا يا"))
        assert [s.title for s in in_order] == ["يا رب ارحمنا (لحن ثان)"]

        both = loaded_db.search_text(normalize("رب ارحمنا"))
        assert {s.title for s in both} == {"يا رَبُّ ارحمنا", "يا رب ارحمنا (لحن ثان)"}

        assert loaded_db.search_text(normalize("فكر تفوق")) == []

    def test_matches_normalized_forms(self, loaded_db):
        # stored "نعمة" / "آمين" are indexed as "نعمه" / "امين"
        assert [s.number for s in loaded_db.search_text("نعمه")] == [1]
        assert [s.number for s in loaded_db.search_text("امين")] == [1]

    def test_no_match(self, loaded_db):
        assert loaded_db.search_text("غير موجود") == []

    def test_blank_query(self, loaded_db):
        assert loaded_db.search_text("") == []
        assert loaded_db.search_text("   ") == []

    def test_equal_relevance_ties_broken_by_id(self, db):
        first = db.insert(make_song(3, "سلام", "سلام لكم"))
        second = db.insert(make_song(2, "سلام", "سلام لكم"))
        songs = db.search_text("سلام")
        assert [s.id for s in songs] == [first.id, second.id]

    def test_embedded_quotes_do_not_break_query(self, loaded_db):
        assert loaded_db.search_text('قال "نعم"') == []

    def test_phrase_query_quoting(self):
        assert phrase_query("رب ارحمنا") == '"رب ارحمنا"'
        assert phrase_query('a "b"') == '"a ""b"""'


# ---------------------------------------------------------------------------
# Clearing and replacing
# ---------------------------------------------------------------------------

class TestClearAndReplace:
    def test_clear_all(self, loaded_db):
        loaded_db.clear_all()
        assert loaded_db.count() == 0
        assert loaded_db.get_all() == []
        assert loaded_db.get_by_number(42) == []
        assert loaded_db.search_text("ارحمنا") == []

    def test_no_stale_hits_after_clear_and_reinsert(self, loaded_db):
        loaded_db.clear_all()
        fresh = loaded_db.insert(make_song(9, "ترنيمة جديدة", "كلمات جديدة"))
        assert loaded_db.search_text("ارحمنا") == []
        assert [s.id for s in loaded_db.search_text("كلمات جديده")] == [fresh.id]

    def test_replace_all(self, loaded_db):
        count = loaded_db.replace_all([
            make_song(100, "الأولى", "سطر"),
            make_song(101, "الثانية", "سطر"),
        ])
        assert count == 2
        assert loaded_db.count() == 2
        assert loaded_db.search_text("ارحمنا") == []
        assert [s.number for s in loaded_db.get_all()] == [100, 101]

    def test_replace_all_rolls_back_on_failure(self, loaded_db):
        def songs():
            yield make_song(100, "الأولى", "سطر")
            raise RuntimeError("source went away")

        with pytest.raises(RuntimeError):
            loaded_db.replace_all(songs())

        assert loaded_db.count() == 4
        assert len(loaded_db.search_text("ارحمنا")) == 2
        assert loaded_db.get_by_number(100) == []


# ---------------------------------------------------------------------------
# Lifecycle / failures
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_memory_database(self):
        with SongDatabase(":memory:") as db:
            db.insert(make_song(1, "سلام"))
            assert db.count() == 1

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "songs.db"
        with SongDatabase(path) as db:
            assert db.count() == 0
        assert path.exists()

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "songs.db"
        with SongDatabase(path) as db:
            saved = db.insert(make_song(5, "سلام", "سلام لكم"))
        with SongDatabase(path) as db:
            assert db.get_by_id(saved.id) == saved
            assert [s.id for s in db.search_text("سلام لكم")] == [saved.id]

    def test_summary(self, loaded_db):
        assert loaded_db.summary() == {
            "total_songs": 4,
            "distinct_numbers": 3,
            "number_min": 1,
            "number_max": 42,
        }

    def test_summary_empty(self, db):
        assert db.summary() == {
            "total_songs": 0,
            "distinct_numbers": 0,
            "number_min": None,
            "number_max": None,
        }

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "broken.db"
        path.write_bytes(b"this is definitely not a sqlite database" * 100)
        db = SongDatabase(path)
        with pytest.raises(StorageError):
            db.count()

    def test_delete_database_file(self, tmp_path):
        path = tmp_path / "songs.db"
        db = SongDatabase(path)
        db.connect()
        db.delete_database_file()
        assert not path.exists()
