"""Tests for the database layer."""
from __future__ import annotations

import pytest

from vocab_quiz.db import Database
from vocab_quiz.errors import Conflict, NotFound, ValidationError
from vocab_quiz.models import VocabularyEntry


class TestCreate:
    def test_assigns_id_and_timestamps(self, tmp_db):
        e = tmp_db.create_vocabulary(VocabularyEntry("cat", "แมว", "A1"))
        assert e.id is not None
        assert e.created_at is not None
        assert e.updated_at == e.created_at
        assert e.category == ""

    def test_duplicate_english_conflicts(self, tmp_db):
        tmp_db.create_vocabulary(VocabularyEntry("cat", "แมว", "A1"))
        with pytest.raises(Conflict):
            tmp_db.create_vocabulary(VocabularyEntry("cat", "x", "A1"))
        assert tmp_db.get_word_count() == 1

    def test_english_is_case_sensitive(self, tmp_db):
        tmp_db.create_vocabulary(VocabularyEntry("cat", "แมว", "A1"))
        tmp_db.create_vocabulary(VocabularyEntry("Cat", "แมว", "A1"))
        assert tmp_db.get_word_count() == 2

    def test_trims_whitespace(self, tmp_db):
        e = tmp_db.create_vocabulary(VocabularyEntry("  cat ", " แมว ", "A1"))
        assert e.english == "cat"
        assert e.thai == "แมว"
        with pytest.raises(Conflict):
            tmp_db.create_vocabulary(VocabularyEntry("cat", "แมว", "A1"))

    @pytest.mark.parametrize("entry", [
        VocabularyEntry("", "แมว", "A1"),
        VocabularyEntry("cat", "   ", "A1"),
        VocabularyEntry("cat", "แมว", "D1"),
        VocabularyEntry("cat", "แมว", "a1"),
    ])
    def test_validation(self, tmp_db, entry):
        with pytest.raises(ValidationError):
            tmp_db.create_vocabulary(entry)


class TestList:
    def test_empty(self, tmp_db):
        assert tmp_db.list_vocabulary() == []

    def test_sorted_by_english(self, populated_db):
        words = [e.english for e in populated_db.list_vocabulary()]
        assert words == sorted(words)
        assert len(words) == 6

    def test_filter_by_level(self, populated_db):
        a1 = populated_db.list_vocabulary("A1")
        assert [e.english for e in a1] == ["bird", "cat", "dog", "fish"]
        assert all(e.level == "A1" for e in a1)
        assert populated_db.list_vocabulary("C1") == []

    def test_unknown_level_is_empty(self, populated_db):
        assert populated_db.list_vocabulary("Z9") == []

    def test_category_kept(self, populated_db):
        journey = populated_db.find_by_english("journey")
        assert journey.category == "travel"


class TestGetUpdateDelete:
    def test_get_missing(self, tmp_db):
        with pytest.raises(NotFound):
            tmp_db.get_vocabulary(999)

    def test_update_partial(self, populated_db):
        cat = populated_db.find_by_english("cat")
        updated = populated_db.update_vocabulary(cat.id, {"thai": "แมวน้อย", "level": "A2"})
        assert updated.thai == "แมวน้อย"
        assert updated.level == "A2"
        assert updated.english == "cat"
        assert updated.created_at == cat.created_at

    def test_update_ignores_unknown_keys(self, populated_db):
        cat = populated_db.find_by_english("cat")
        updated = populated_db.update_vocabulary(cat.id, {"id": 42, "color": "black"})
        assert updated == cat

    def test_update_missing(self, tmp_db):
        with pytest.raises(NotFound):
            tmp_db.update_vocabulary(999, {"thai": "x"})

    def test_update_validates(self, populated_db):
        cat = populated_db.find_by_english("cat")
        with pytest.raises(ValidationError):
            populated_db.update_vocabulary(cat.id, {"level": "X"})
        with pytest.raises(ValidationError):
            populated_db.update_vocabulary(cat.id, {"english": ""})

    def test_update_rename_conflict(self, populated_db):
        cat = populated_db.find_by_english("cat")
        with pytest.raises(Conflict):
            populated_db.update_vocabulary(cat.id, {"english": "dog"})

    def test_update_same_english_allowed(self, populated_db):
        cat = populated_db.find_by_english("cat")
        updated = populated_db.update_vocabulary(cat.id, {"english": "cat", "thai": "เหมียว"})
        assert updated.thai == "เหมียว"

    def test_delete_returns_entry(self, populated_db):
        cat = populated_db.find_by_english("cat")
        deleted = populated_db.delete_vocabulary(cat.id)
        assert deleted.english == "cat"
        assert populated_db.find_by_english("cat") is None
        with pytest.raises(NotFound):
            populated_db.delete_vocabulary(cat.id)

    def test_delete_all(self, populated_db):
        assert populated_db.delete_all_vocabulary() == 6
        assert populated_db.list_vocabulary() == []
        assert populated_db.delete_all_vocabulary() == 0


class TestBulkUpsert:
    def test_round_trip(self, tmp_db):
        tmp_db.bulk_upsert([VocabularyEntry("apple", "แอปเปิ้ล", "A1")])
        listed = tmp_db.list_vocabulary()
        assert [(e.english, e.thai, e.level) for e in listed] == [("apple", "แอปเปิ้ล", "A1")]

    def test_counts(self, populated_db):
        result = populated_db.bulk_upsert([
            {"english": "cat", "thai": "แมว", "level": "A1"},
            {"english": "dog", "thai": "หมา", "level": "A1"},
            {"english": "apple", "thai": "แอปเปิ้ล", "level": "A1"},
        ])
        assert result.inserted == 1
        assert result.matched == 2
        assert result.modified == 1
        assert populated_db.find_by_english("dog").thai == "หมา"

    def test_keeps_category_when_omitted(self, populated_db):
        result = populated_db.bulk_upsert([
            {"english": "journey", "thai": "การเดินทาง", "level": "B1"},
            VocabularyEntry("opinion", "ความเห็น", "B2"),
        ])
        assert result.matched == 2
        assert populated_db.find_by_english("journey").category == "travel"
        opinion = populated_db.find_by_english("opinion")
        assert opinion.level == "B2"
        assert opinion.category == ""

    def test_replaces_category_when_given(self, populated_db):
        populated_db.bulk_upsert([
            {"english": "journey", "thai": "การเดินทาง", "level": "B1", "category": "nouns"},
        ])
        assert populated_db.find_by_english("journey").category == "nouns"

    def test_drops_incomplete_items(self, tmp_db):
        result = tmp_db.bulk_upsert([
            {"english": "apple", "thai": "แอปเปิ้ล", "level": "A1"},
            {"english": "pear", "level": "A1"},
            {"thai": "ส้ม", "level": "A1"},
            {"english": "kiwi", "thai": "กีวี"},
        ])
        assert result.inserted == 1
        assert tmp_db.get_word_count() == 1

    def test_nothing_valid(self, tmp_db):
        with pytest.raises(ValidationError):
            tmp_db.bulk_upsert([{"english": "pear"}])
        with pytest.raises(ValidationError):
            tmp_db.bulk_upsert([])

    def test_invalid_level_rejects_batch(self, tmp_db):
        with pytest.raises(ValidationError):
            tmp_db.bulk_upsert([
                {"english": "apple", "thai": "แอปเปิ้ล", "level": "A1"},
                {"english": "pear", "thai": "สาลี่", "level": "Z9"},
            ])
        assert tmp_db.get_word_count() == 0

    def test_duplicates_within_batch(self, tmp_db):
        result = tmp_db.bulk_upsert([
            VocabularyEntry("apple", "แอปเปิ้ล", "A1"),
            VocabularyEntry("apple", "แอปเปิล", "A2"),
        ])
        assert result.inserted == 1
        assert result.matched == 1
        apple = tmp_db.find_by_english("apple")
        assert apple.thai == "แอปเปิล"
        assert apple.level == "A2"


class TestStats:
    def test_empty(self, tmp_db):
        stats = tmp_db.get_stats()
        assert stats["total_words"] == 0
        assert stats["by_level"] == {"A1": 0, "A2": 0, "B1": 0, "B2": 0, "C1": 0, "C2": 0}

    def test_counts_per_level(self, populated_db):
        stats = populated_db.get_stats()
        assert stats["total_words"] == 6
        assert stats["by_level"]["A1"] == 4
        assert stats["by_level"]["B1"] == 2


class TestLifecycle:
    def test_reopen_keeps_data(self, tmp_path):
        db = Database(tmp_path / "words.db")
        db.create_vocabulary(VocabularyEntry("cat", "แมว", "A1"))
        db.close()

        db = Database(tmp_path / "words.db")
        assert db.get_word_count() == 1
        db.close()

    def test_file_mtime(self, tmp_db):
        assert tmp_db.get_file_mtime("/data/A1.csv") is None
        tmp_db.set_file_mtime("/data/A1.csv", 123)
        assert tmp_db.get_file_mtime("/data/A1.csv") == 123
