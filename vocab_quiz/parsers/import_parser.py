"""Parse pasted or CSV word lists into VocabularyEntry drafts.

One word per line, ``english,thai``.  Extra columns are ignored, lines
missing either field are skipped, surrounding whitespace is trimmed.
"""
from __future__ import annotations

from pathlib import Path

from vocab_quiz.models import VocabularyEntry


def parse_import_text(text: str, level: str) -> list[VocabularyEntry]:
    entries: list[VocabularyEntry] = []
    for line in text.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        english = parts[0] if parts else ""
        thai = parts[1] if len(parts) > 1 else ""
        if english and thai:
            entries.append(VocabularyEntry(english=english, thai=thai, level=level))
    return entries


def parse_import_file(path: Path, level: str | None = None) -> list[VocabularyEntry]:
    """Parse a CSV file. Without *level*, the file stem names it (``B1.csv``)."""
    return parse_import_text(path.read_text(encoding="utf-8"), level or path.stem.upper())
