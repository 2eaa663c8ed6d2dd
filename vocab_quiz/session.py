"""Quiz session controller: loads a level from the repository and drives the engine."""
from __future__ import annotations

import inspect
import logging
from collections.abc import Callable

from vocab_quiz.models import QuizSnapshot
from vocab_quiz.quiz import QuizEngine

log = logging.getLogger("vocab_quiz.session")

LOAD_ERROR = "Failed to load vocabulary words"


class QuizSessionController:
    """Owns one play session.

    ``repository`` needs a ``list_vocabulary(level)`` method, either plain
    (``Database``) or a coroutine (``VocabularyClient``).  Observers get a
    fresh ``QuizSnapshot`` after every command.

    Each ``set_level`` call is numbered; a response that arrives after a
    newer request was issued is dropped, so the last request wins.
    """

    def __init__(self, repository, engine: QuizEngine | None = None, level: str = "A1"):
        self.repository = repository
        self.engine = engine or QuizEngine()
        self.level = level
        self.is_loading = False
        self.error: str | None = None
        self._observers: list[Callable[[QuizSnapshot], None]] = []
        self._request_seq = 0

    # ── Observers ─────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[QuizSnapshot], None]) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _publish(self) -> QuizSnapshot:
        snap = self.snapshot()
        for cb in list(self._observers):
            cb(snap)
        return snap

    def snapshot(self) -> QuizSnapshot:
        return QuizSnapshot(
            level=self.level,
            current=self.engine.current,
            options=list(self.engine.options),
            completed=self.engine.completed,
            total_words=self.engine.total_words,
            state=self.engine.state,
            is_loading=self.is_loading,
            error=self.error,
        )

    # ── Commands ──────────────────────────────────────────────────────────

    async def set_level(self, level: str) -> QuizSnapshot:
        self._request_seq += 1
        token = self._request_seq
        self.is_loading = True
        self.error = None
        self._publish()

        try:
            entries = self.repository.list_vocabulary(level)
            if inspect.isawaitable(entries):
                entries = await entries
        except Exception as e:
            if token != self._request_seq:
                log.info("Ignoring failed stale load for level %s: %s", level, e)
                return self.snapshot()
            log.warning("Loading level %s failed: %s", level, e)
            self.is_loading = False
            self.error = LOAD_ERROR
            return self._publish()

        if token != self._request_seq:
            log.info("Discarding stale response for level %s", level)
            return self.snapshot()

        self.level = level
        self.is_loading = False
        self.engine.select_level(level, entries)
        return self._publish()

    change_level = set_level

    def submit_answer(self, choice: str) -> bool:
        correct = self.engine.submit_answer(choice)
        self._publish()
        return correct

    def restart(self) -> QuizSnapshot:
        self.engine.restart()
        return self._publish()

    def speak(self) -> bool:
        """Replay the current word's pronunciation. False when there is none."""
        if self.engine.current is None:
            return False
        self.engine.pronounce(self.engine.current.english)
        return True

    def show_answer(self) -> str | None:
        return self.engine.show_answer()
