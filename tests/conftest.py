"""Shared test fixtures."""
from __future__ import annotations

import pytest

from vocab_quiz.db import Database
from vocab_quiz.models import VocabularyEntry


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def sample_entries():
    """Four A1 animals, enough for a full set of options."""
    return [
        VocabularyEntry("cat", "แมว", "A1"),
        VocabularyEntry("dog", "สุนัข", "A1"),
        VocabularyEntry("bird", "นก", "A1"),
        VocabularyEntry("fish", "ปลา", "A1"),
    ]


@pytest.fixture
def mixed_entries(sample_entries):
    """A1 animals plus a couple of B1 words."""
    return sample_entries + [
        VocabularyEntry("journey", "การเดินทาง", "B1", category="travel"),
        VocabularyEntry("opinion", "ความคิดเห็น", "B1"),
    ]


@pytest.fixture
def populated_db(tmp_db, mixed_entries):
    """A database pre-loaded with sample data."""
    for e in mixed_entries:
        tmp_db.create_vocabulary(e)
    return tmp_db


@pytest.fixture
def import_text():
    """Pasted word list as typed into the import box."""
    return """\
apple, แอปเปิ้ล
banana,กล้วย

orange ,ส้ม, fruit
missing-translation
,ไม่มีคำ
"""
