"""FastAPI application: vocabulary CRUD and quiz sessions."""
from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import asynccontextmanager

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse

from vocab_quiz.audio import Pronouncer, text_hash
from vocab_quiz.config import Settings, clean_settings_update, load_settings, save_settings
from vocab_quiz.db import Database, validate_level
from vocab_quiz.errors import NotFound, ValidationError, VocabError
from vocab_quiz.models import VocabularyEntry
from vocab_quiz.parsers.import_parser import parse_import_file, parse_import_text
from vocab_quiz.quiz import QuizEngine
from vocab_quiz.session import QuizSessionController

log = logging.getLogger("vocab_quiz.app")

MAX_SESSIONS = 256


def _get_tts(settings: Settings):
    if settings.tts_provider == "edge-tts":
        from vocab_quiz.providers.tts_edge import EdgeTTSProvider
        return EdgeTTSProvider(voice=settings.tts_voice)
    if settings.tts_provider in ("none", "", None):
        return None
    raise ValueError(f"Unknown TTS provider: {settings.tts_provider}")


def _auto_import_if_changed(db: Database, settings: Settings) -> None:
    """Re-import word files whose mtime has changed since the last import."""
    log = logging.getLogger("auto-import")
    for f in settings.resolved_import_files():
        if not f.exists():
            continue
        current_mtime = f.stat().st_mtime_ns
        if db.get_file_mtime(str(f)) == current_mtime:
            continue
        log.info("Changed: %s - re-importing", f.name)
        try:
            result = db.bulk_upsert(parse_import_file(f))
            log.info("  %d inserted, %d modified", result.inserted, result.modified)
        except ValidationError as e:
            log.warning("  %s: %s", f.name, e.message)
        db.set_file_mtime(str(f), current_mtime)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_db = app.state.db is None
    if owns_db:
        if app.state.settings is None:
            app.state.settings = load_settings()
        settings = app.state.settings
        app.state.db = Database(settings.db_full_path)
        if not os.environ.get("VOCAB_QUIZ_NO_AUTO_IMPORT"):
            _auto_import_if_changed(app.state.db, settings)
    if app.state.pronouncer is None:
        settings = app.state.settings
        app.state.pronouncer = Pronouncer(
            _get_tts(settings), app.state.db, settings.audio_cache_full_path,
        )
    yield
    await app.state.pronouncer.drain()
    app.state.sessions.clear()
    if owns_db:
        app.state.db.close()
        app.state.db = None


def create_app(db: Database | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app. A given *db* is used as-is and left open on shutdown."""
    app = FastAPI(title="Vocab Quiz", lifespan=lifespan)
    if db is not None and settings is None:
        settings = Settings()
    app.state.db = db
    app.state.settings = settings
    app.state.sessions = {}
    app.state.pronouncer = None
    if db is not None:
        app.state.pronouncer = Pronouncer(
            _get_tts(settings), db, settings.audio_cache_full_path,
        )

    @app.exception_handler(VocabError)
    async def vocab_error_handler(request: Request, exc: VocabError):
        return JSONResponse({"success": False, "error": exc.message}, status_code=exc.status_code)

    _register_vocabulary_routes(app)
    _register_quiz_routes(app)
    _register_misc_routes(app)
    return app


def _db(request: Request) -> Database:
    db = request.app.state.db
    if db is None:
        raise VocabError("Database is not open")
    return db


def _settings(request: Request) -> Settings:
    return request.app.state.settings


async def _json_body(request: Request):
    try:
        return await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON")


def _ok(data, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data}, status_code=status_code)


# ── Vocabulary ────────────────────────────────────────────────────────────

def _register_vocabulary_routes(app: FastAPI) -> None:

    @app.get("/api/vocabulary")
    async def api_list_vocabulary(request: Request, level: str | None = None):
        entries = _db(request).list_vocabulary(level)
        return _ok([e.to_dict() for e in entries])

    @app.post("/api/vocabulary")
    async def api_create_vocabulary(request: Request):
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        entry = VocabularyEntry(
            english=body.get("english") or "",
            thai=body.get("thai") or "",
            level=body.get("level") or "",
            category=body.get("category") or "",
        )
        created = _db(request).create_vocabulary(entry)
        return _ok(created.to_dict(), status_code=201)

    @app.delete("/api/vocabulary")
    async def api_delete_all_vocabulary(request: Request):
        deleted = _db(request).delete_all_vocabulary()
        return {"success": True, "message": "All vocabulary items deleted", "deleted": deleted}

    @app.post("/api/vocabulary/bulk")
    async def api_bulk_vocabulary(request: Request):
        body = await _json_body(request)
        if not isinstance(body, list):
            raise ValidationError("Request body must be an array")
        items = [item for item in body if isinstance(item, dict)]
        result = _db(request).bulk_upsert(items)
        return _ok(result.to_dict(), status_code=201)

    @app.post("/api/vocabulary/import")
    async def api_import_vocabulary(request: Request):
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        level = validate_level(body.get("level") or "")
        entries = parse_import_text(body.get("text") or "", level)
        if not entries:
            raise ValidationError("No valid data to import")
        result = _db(request).bulk_upsert(entries)
        return _ok(result.to_dict(), status_code=201)

    @app.get("/api/vocabulary/{entry_id}")
    async def api_get_vocabulary(request: Request, entry_id: int):
        return _ok(_db(request).get_vocabulary(entry_id).to_dict())

    @app.put("/api/vocabulary/{entry_id}")
    async def api_update_vocabulary(request: Request, entry_id: int):
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        return _ok(_db(request).update_vocabulary(entry_id, body).to_dict())

    @app.delete("/api/vocabulary/{entry_id}")
    async def api_delete_vocabulary(request: Request, entry_id: int):
        return _ok(_db(request).delete_vocabulary(entry_id).to_dict())


# ── Quiz sessions ─────────────────────────────────────────────────────────

def _session_payload(request: Request, session_id: str, controller: QuizSessionController) -> dict:
    payload = controller.snapshot().to_dict()
    payload["session_id"] = session_id
    current = controller.engine.current
    pronouncer = request.app.state.pronouncer
    payload["audio_hash"] = (
        text_hash(current.english) if current and pronouncer and pronouncer.tts else None
    )
    return payload


def _get_session(request: Request, session_id: str) -> QuizSessionController:
    controller = request.app.state.sessions.get(session_id)
    if controller is None:
        raise NotFound("Session not found")
    return controller


def _store_session(sessions: dict, session_id: str, controller: QuizSessionController) -> None:
    """Add a session, dropping the oldest ones once MAX_SESSIONS is reached."""
    while len(sessions) >= MAX_SESSIONS:
        oldest = next(iter(sessions))
        del sessions[oldest]
        log.info("Session limit reached, dropped %s", oldest)
    sessions[session_id] = controller


def _register_quiz_routes(app: FastAPI) -> None:

    @app.post("/api/quiz/start")
    async def api_quiz_start(request: Request):
        body = await _json_body(request) if await request.body() else {}
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        s = _settings(request)
        level = validate_level(body.get("level") or s.default_level)
        engine = QuizEngine(
            speaker=request.app.state.pronouncer,
            distractor_count=max(s.options_per_question - 1, 0),
        )
        controller = QuizSessionController(_db(request), engine=engine, level=level)
        session_id = uuid.uuid4().hex
        _store_session(request.app.state.sessions, session_id, controller)
        await controller.set_level(level)
        return _session_payload(request, session_id, controller)

    @app.get("/api/quiz/{session_id}")
    async def api_quiz_state(request: Request, session_id: str):
        controller = _get_session(request, session_id)
        return _session_payload(request, session_id, controller)

    @app.post("/api/quiz/{session_id}/answer")
    async def api_quiz_answer(request: Request, session_id: str):
        controller = _get_session(request, session_id)
        body = await _json_body(request)
        choice = body.get("choice") if isinstance(body, dict) else None
        if not isinstance(choice, str):
            raise ValidationError("Field 'choice' is required")
        correct = controller.submit_answer(choice)
        return {"correct": correct, **_session_payload(request, session_id, controller)}

    @app.post("/api/quiz/{session_id}/restart")
    async def api_quiz_restart(request: Request, session_id: str):
        controller = _get_session(request, session_id)
        controller.restart()
        return _session_payload(request, session_id, controller)

    @app.post("/api/quiz/{session_id}/level")
    async def api_quiz_level(request: Request, session_id: str):
        controller = _get_session(request, session_id)
        body = await _json_body(request)
        level = validate_level((body.get("level") if isinstance(body, dict) else None) or "")
        await controller.change_level(level)
        return _session_payload(request, session_id, controller)

    @app.post("/api/quiz/{session_id}/speak")
    async def api_quiz_speak(request: Request, session_id: str):
        controller = _get_session(request, session_id)
        if not controller.speak():
            raise ValidationError("No current word")
        return _session_payload(request, session_id, controller)

    @app.delete("/api/quiz/{session_id}")
    async def api_quiz_discard(request: Request, session_id: str):
        if request.app.state.sessions.pop(session_id, None) is None:
            raise NotFound("Session not found")
        return {"session_id": session_id, "discarded": True}


# ── Audio, stats, settings ───────────────────────────────────────────────

def _register_misc_routes(app: FastAPI) -> None:

    @app.get("/api/audio/{audio_hash}.mp3")
    async def api_audio(request: Request, audio_hash: str):
        audio_path = _settings(request).audio_cache_full_path / f"{audio_hash}.mp3"
        if not audio_path.exists():
            raise NotFound("Audio not found")
        return FileResponse(audio_path, media_type="audio/mpeg")

    @app.get("/api/stats")
    async def api_stats(request: Request):
        stats = _db(request).get_stats()
        stats["active_sessions"] = len(request.app.state.sessions)
        return stats

    @app.get("/api/settings")
    async def api_get_settings(request: Request):
        return _settings(request).to_dict()

    @app.put("/api/settings")
    async def api_update_settings(request: Request):
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
        s = _settings(request)
        for k, v in clean_settings_update(body).items():
            setattr(s, k, v)
        save_settings(s)
        return s.to_dict()


app = create_app()
