"""Multiple-choice quiz over one level's word pool.

The engine holds no I/O: the pool is handed in by the session controller,
and pronunciation goes through an injected ``speaker`` callable.
"""
from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence

from vocab_quiz.models import QuizState, VocabularyEntry

log = logging.getLogger("vocab_quiz.quiz")

DISTRACTOR_COUNT = 3


class QuizEngine:
    def __init__(
        self,
        rng: random.Random | None = None,
        speaker: Callable[[str], object] | None = None,
        distractor_count: int = DISTRACTOR_COUNT,
    ):
        self.rng = rng or random.Random()
        self.speaker = speaker
        self.distractor_count = distractor_count
        self.level: str | None = None
        self.pool: list[VocabularyEntry] = []
        # dict keys keep insertion order for the completion counter
        self._completed: dict[str, None] = {}
        self.current: VocabularyEntry | None = None
        self.options: list[str] = []
        self._initialized = False

    @property
    def completed(self) -> list[str]:
        return list(self._completed)

    @property
    def total_words(self) -> int:
        return len(self.pool)

    @property
    def state(self) -> QuizState:
        if not self._initialized:
            return QuizState.INIT
        if not self.pool:
            return QuizState.EMPTY_LEVEL
        if self.current is None:
            return QuizState.COMPLETE
        return QuizState.IN_PROGRESS

    def select_level(self, level: str, pool: Sequence[VocabularyEntry]) -> None:
        """Start a fresh session for *level* and pick the first question."""
        self.level = level
        self.pool = list(pool)
        self._completed = {}
        self._initialized = True
        log.info("Level %s: %d words", level, len(self.pool))
        self.advance()

    def advance(self) -> None:
        available = [w for w in self.pool if w.english not in self._completed]
        if not available:
            self.current = None
            self.options = []
            return

        current = self.rng.choice(available)
        distractors = [w.thai for w in self.pool if w.thai != current.thai]
        self.rng.shuffle(distractors)
        options = [current.thai, *distractors[: self.distractor_count]]
        self.rng.shuffle(options)

        self.current = current
        self.options = options
        self.pronounce(current.english)

    def submit_answer(self, choice: str) -> bool:
        """Check *choice* against the current word; advance only when correct."""
        if self.current is None:
            return False
        if choice != self.current.thai:
            return False
        self._completed.setdefault(self.current.english, None)
        self.advance()
        return True

    def restart(self) -> None:
        self._completed = {}
        self.advance()

    def show_answer(self) -> str | None:
        return self.current.thai if self.current else None

    def pronounce(self, text: str) -> None:
        if self.speaker is None:
            return
        try:
            self.speaker(text)
        except Exception as e:
            log.warning("Pronunciation failed for %r: %s", text, e)
