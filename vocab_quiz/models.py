from __future__ import annotations

import enum
from dataclasses import asdict, dataclass

LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")


@dataclass
class VocabularyEntry:
    english: str
    thai: str
    level: str
    category: str = ""
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> VocabularyEntry:
        return cls(
            english=data["english"],
            thai=data["thai"],
            level=data["level"],
            category=data.get("category") or "",
            id=data.get("id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class BulkResult:
    inserted: int = 0
    modified: int = 0
    matched: int = 0

    def to_dict(self) -> dict:
        return {
            "upserted_count": self.inserted,
            "modified_count": self.modified,
            "matched_count": self.matched,
        }


class QuizState(str, enum.Enum):
    INIT = "init"
    IN_PROGRESS = "in_progress"
    EMPTY_LEVEL = "empty_level"
    COMPLETE = "complete"


@dataclass
class QuizSnapshot:
    """Everything a presentation layer needs to draw one quiz screen."""

    level: str
    current: VocabularyEntry | None
    options: list[str]
    completed: list[str]
    total_words: int
    state: QuizState
    is_loading: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "current": self.current.to_dict() if self.current else None,
            "options": list(self.options),
            "completed": list(self.completed),
            "total_words": self.total_words,
            "state": self.state.value,
            "is_loading": self.is_loading,
            "error": self.error,
        }
