from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from vocab_quiz.errors import Conflict, NotFound, ValidationError
from vocab_quiz.models import LEVELS, BulkResult, VocabularyEntry

log = logging.getLogger("vocab_quiz.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS vocabulary (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    english TEXT NOT NULL UNIQUE,
    thai TEXT NOT NULL,
    level TEXT NOT NULL CHECK (level IN ('A1', 'A2', 'B1', 'B2', 'C1', 'C2')),
    category TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_vocabulary_level ON vocabulary(level);

CREATE TABLE IF NOT EXISTS audio_cache (
    text_hash TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    tts_provider TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS file_mtimes (
    file_path TEXT PRIMARY KEY,
    mtime_ns INTEGER NOT NULL
);
"""

EDITABLE_FIELDS = ("english", "thai", "level", "category")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_entry(row: sqlite3.Row) -> VocabularyEntry:
    return VocabularyEntry(
        id=row["id"],
        english=row["english"],
        thai=row["thai"],
        level=row["level"],
        category=row["category"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def validate_level(level: str) -> str:
    if level not in LEVELS:
        raise ValidationError(f"Invalid level: {level!r} (expected one of {', '.join(LEVELS)})")
    return level


def _clean_fields(fields: dict) -> dict:
    """Trim text fields and validate whatever is present."""
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if key == "category":
            cleaned[key] = str(value or "").strip()
            continue
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Field '{key}' is required")
        cleaned[key] = value.strip()
    if "level" in cleaned:
        validate_level(cleaned["level"])
    return cleaned


class Database:
    """SQLite-backed word repository.

    Opened on construction, released by ``close()``.  Every mutating
    method commits before returning.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Vocabulary ────────────────────────────────────────────────────────

    def list_vocabulary(self, level: str | None = None) -> list[VocabularyEntry]:
        """All entries (or one level's), sorted by english. An unknown level matches nothing."""
        if level:
            rows = self.conn.execute(
                "SELECT * FROM vocabulary WHERE level = ? ORDER BY english",
                (level,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM vocabulary ORDER BY english"
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def get_vocabulary(self, entry_id: int) -> VocabularyEntry:
        row = self.conn.execute(
            "SELECT * FROM vocabulary WHERE id = ?", (entry_id,)
        ).fetchone()
        if row is None:
            raise NotFound("Vocabulary not found")
        return _row_to_entry(row)

    def find_by_english(self, english: str) -> VocabularyEntry | None:
        row = self.conn.execute(
            "SELECT * FROM vocabulary WHERE english = ?", (english,)
        ).fetchone()
        return _row_to_entry(row) if row else None

    def create_vocabulary(self, entry: VocabularyEntry) -> VocabularyEntry:
        fields = _clean_fields({
            "english": entry.english,
            "thai": entry.thai,
            "level": entry.level,
            "category": entry.category,
        })
        if self.find_by_english(fields["english"]) is not None:
            raise Conflict("Word already exists")
        now = _now()
        cur = self.conn.execute(
            "INSERT INTO vocabulary (english, thai, level, category, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (fields["english"], fields["thai"], fields["level"], fields["category"], now, now),
        )
        self.conn.commit()
        return self.get_vocabulary(cur.lastrowid)

    def update_vocabulary(self, entry_id: int, patch: dict) -> VocabularyEntry:
        """Apply a partial update. Unknown keys are ignored."""
        existing = self.get_vocabulary(entry_id)
        fields = _clean_fields(patch)
        if not fields:
            return existing
        if "english" in fields and fields["english"] != existing.english:
            other = self.find_by_english(fields["english"])
            if other is not None:
                raise Conflict("Word already exists")
        assignments = ", ".join(f"{k} = ?" for k in fields)
        self.conn.execute(
            f"UPDATE vocabulary SET {assignments}, updated_at = ? WHERE id = ?",
            (*fields.values(), _now(), entry_id),
        )
        self.conn.commit()
        return self.get_vocabulary(entry_id)

    def delete_vocabulary(self, entry_id: int) -> VocabularyEntry:
        existing = self.get_vocabulary(entry_id)
        self.conn.execute("DELETE FROM vocabulary WHERE id = ?", (entry_id,))
        self.conn.commit()
        return existing

    def delete_all_vocabulary(self) -> int:
        cur = self.conn.execute("DELETE FROM vocabulary")
        self.conn.commit()
        return cur.rowcount

    def bulk_upsert(self, entries: list[VocabularyEntry | dict]) -> BulkResult:
        """Insert-or-replace keyed on ``english``.

        Items missing english, thai or level are dropped silently; if
        none survive, ValidationError is raised.  A matched word keeps its
        category unless the item supplies one.
        """
        valid: list[dict] = []
        for item in entries:
            if isinstance(item, VocabularyEntry):
                raw = item.to_dict()
                if not raw["category"]:
                    del raw["category"]
            else:
                raw = dict(item)
            if not all(isinstance(raw.get(k), str) and raw[k].strip()
                       for k in ("english", "thai", "level")):
                continue
            valid.append(_clean_fields(raw))
        if not valid:
            raise ValidationError("No valid vocabulary items provided")

        result = BulkResult()
        now = _now()
        for fields in valid:
            existing = self.find_by_english(fields["english"])
            if existing is None:
                self.conn.execute(
                    "INSERT INTO vocabulary "
                    "(english, thai, level, category, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (fields["english"], fields["thai"], fields["level"],
                     fields.get("category", ""), now, now),
                )
                result.inserted += 1
                continue
            result.matched += 1
            # Fields the item leaves out keep their stored value.
            category = fields.get("category", existing.category)
            changed = (existing.thai, existing.level, existing.category) != (
                fields["thai"], fields["level"], category)
            if changed:
                self.conn.execute(
                    "UPDATE vocabulary SET thai = ?, level = ?, category = ?, updated_at = ? "
                    "WHERE id = ?",
                    (fields["thai"], fields["level"], category, now, existing.id),
                )
                result.modified += 1
        self.conn.commit()
        log.info("Bulk upsert: %d inserted, %d matched, %d modified",
                 result.inserted, result.matched, result.modified)
        return result

    def get_word_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM vocabulary").fetchone()
        return row[0]

    def get_stats(self) -> dict:
        rows = self.conn.execute(
            "SELECT level, COUNT(*) AS cnt FROM vocabulary GROUP BY level"
        ).fetchall()
        by_level = {level: 0 for level in LEVELS}
        for r in rows:
            by_level[r["level"]] = r["cnt"]
        return {
            "total_words": self.get_word_count(),
            "by_level": by_level,
        }

    # ── File mtimes ─────────────────────────────────────────────────────

    def get_file_mtime(self, file_path: str) -> int | None:
        row = self.conn.execute(
            "SELECT mtime_ns FROM file_mtimes WHERE file_path = ?", (file_path,)
        ).fetchone()
        return row[0] if row else None

    def set_file_mtime(self, file_path: str, mtime_ns: int) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO file_mtimes (file_path, mtime_ns) VALUES (?, ?)",
            (file_path, mtime_ns),
        )
        self.conn.commit()

    # ── Audio cache ───────────────────────────────────────────────────────

    def get_audio_cache(self, text_hash: str) -> str | None:
        row = self.conn.execute(
            "SELECT file_path FROM audio_cache WHERE text_hash = ?",
            (text_hash,),
        ).fetchone()
        return row["file_path"] if row else None

    def set_audio_cache(self, text_hash: str, file_path: str, tts_provider: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO audio_cache "
            "(text_hash, file_path, tts_provider, created_at) VALUES (?, ?, ?, ?)",
            (text_hash, file_path, tts_provider, _now()),
        )
        self.conn.commit()

    def delete_audio_cache(self, text_hash: str) -> None:
        self.conn.execute(
            "DELETE FROM audio_cache WHERE text_hash = ?", (text_hash,)
        )
        self.conn.commit()
