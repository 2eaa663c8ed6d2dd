"""TTS audio caching and the fire-and-forget pronouncer."""
from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vocab_quiz.db import Database
    from vocab_quiz.providers.base import TTSProvider

log = logging.getLogger("vocab_quiz.audio")


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:16]


async def get_or_create_audio(
    text: str,
    tts: TTSProvider,
    db: Database,
    cache_dir: Path,
) -> Path | None:
    """Get cached audio or generate new TTS audio."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    h = text_hash(text)

    cached_path = db.get_audio_cache(h)
    if cached_path:
        p = Path(cached_path)
        if p.exists():
            return p
        db.delete_audio_cache(h)

    output_path = cache_dir / f"{h}.mp3"
    try:
        await tts.synthesize(text, output_path)
        db.set_audio_cache(h, str(output_path), tts.name())
        return output_path
    except Exception as e:
        log.warning("TTS error for %r: %s", text, e)
        return None


class Pronouncer:
    """Speaks words without ever blocking or failing the caller.

    ``speak`` schedules synthesis on the running event loop and returns
    the audio hash the file will be cached under.  With no TTS provider,
    or outside an event loop, it does nothing.
    """

    def __init__(self, tts: TTSProvider | None, db: Database, cache_dir: Path):
        self.tts = tts
        self.db = db
        self.cache_dir = cache_dir
        self._tasks: set[asyncio.Task] = set()

    def speak(self, text: str) -> str | None:
        if self.tts is None or not text:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No event loop; skipping pronunciation of %r", text)
            return None
        task = loop.create_task(get_or_create_audio(text, self.tts, self.db, self.cache_dir))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return text_hash(text)

    __call__ = speak

    async def drain(self) -> None:
        """Wait for pending synthesis (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
