"""CLI entry point for vocab-quiz.

Usage:
  python -m vocab_quiz serve [--port PORT] [--host HOST] [--no-auto-import]
  python -m vocab_quiz stop
  python -m vocab_quiz restart [--port PORT]
  python -m vocab_quiz status
  python -m vocab_quiz import FILE [--level LEVEL]
  python -m vocab_quiz stats
  python -m vocab_quiz clear
"""
from __future__ import annotations

import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "import":
        _import_file(args[1:])
    elif command == "stats":
        _stats()
    elif command == "clear":
        _clear()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, import, stats, clear")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """PID of the running server, or None. A stale PID file is removed."""
    try:
        pid = int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        _remove_pid()
        return None
    if not _is_alive(pid):
        _remove_pid()
        return None
    return pid


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        return False
    return True


def _write_pid() -> None:
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _stop(wait: float = 0.0) -> bool:
    """SIGTERM the running server, optionally waiting up to *wait* seconds for it to exit."""
    import time

    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        pass
    _remove_pid()
    deadline = time.monotonic() + wait
    while time.monotonic() < deadline and _is_alive(pid):
        time.sleep(0.1)
    print(f"Stopped server (PID {pid}).")
    return True


def _status():
    pid = _read_pid()
    print("Server is not running." if pid is None else f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    _stop(wait=5.0)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    if "--no-auto-import" in args:
        os.environ["VOCAB_QUIZ_NO_AUTO_IMPORT"] = "1"
    host = _parse_flag(args, "--host", "127.0.0.1")
    port = int(_parse_flag(args, "--port", "8765"))

    _write_pid()
    print(f"Vocab Quiz listening on http://{host}:{port} (Ctrl+C to stop)")
    try:
        uvicorn.run("vocab_quiz.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        _remove_pid()
        os.environ.pop("VOCAB_QUIZ_NO_AUTO_IMPORT", None)


def _import_file(args: list[str]):
    from vocab_quiz.config import load_settings
    from vocab_quiz.db import Database
    from vocab_quiz.errors import ValidationError
    from vocab_quiz.parsers.import_parser import parse_import_file

    paths = [a for a in args if not a.startswith("--")]
    level = _parse_flag(args, "--level", None)
    if level:
        paths = [p for p in paths if p != level]
    if not paths:
        print("Usage: python -m vocab_quiz import FILE [--level LEVEL]")
        sys.exit(1)

    settings = load_settings()
    db = Database(settings.db_full_path)
    try:
        for p in paths:
            path = Path(p)
            if not path.exists():
                print(f"  Skipping (not found): {path}")
                continue
            entries = parse_import_file(path, level)
            try:
                result = db.bulk_upsert(entries)
            except ValidationError as e:
                print(f"  {path.name}: {e.message}")
                continue
            print(f"  {path.name}: {result.inserted} inserted, "
                  f"{result.matched} matched, {result.modified} modified")
        print(f"\nTotal in DB: {db.get_word_count()} words")
    finally:
        db.close()


def _stats():
    from vocab_quiz.config import load_settings
    from vocab_quiz.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    stats = db.get_stats()

    print("Vocab Quiz Stats")
    print("=" * 40)
    print(f"Total words:        {stats['total_words']}")
    for level, count in stats["by_level"].items():
        print(f"  {level}:               {count}")
    db.close()


def _clear():
    from vocab_quiz.config import load_settings
    from vocab_quiz.db import Database

    settings = load_settings()
    db = Database(settings.db_full_path)
    n = db.delete_all_vocabulary()
    print(f"Deleted {n} words.")
    db.close()


if __name__ == "__main__":
    main()
