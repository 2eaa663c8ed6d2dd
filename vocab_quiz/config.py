from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from vocab_quiz.errors import ValidationError
from vocab_quiz.models import LEVELS

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "db_path": "vocabulary.db",
    "tts_provider": "edge-tts",
    "tts_voice": "en-US-AriaNeural",
    "audio_cache_dir": "audio_cache",
    "default_level": "A1",
    "import_files": [],
    "options_per_question": 4,
}

FIELD_TYPES = {
    "db_path": str,
    "tts_provider": str,
    "tts_voice": str,
    "audio_cache_dir": str,
    "default_level": str,
    "import_files": list,
    "options_per_question": int,
}

TTS_PROVIDERS = ("edge-tts", "none")


@dataclass
class Settings:
    db_path: str = DEFAULTS["db_path"]
    tts_provider: str = DEFAULTS["tts_provider"]
    tts_voice: str = DEFAULTS["tts_voice"]
    audio_cache_dir: str = DEFAULTS["audio_cache_dir"]
    default_level: str = DEFAULTS["default_level"]
    import_files: list[str] = field(default_factory=lambda: list(DEFAULTS["import_files"]))
    options_per_question: int = DEFAULTS["options_per_question"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    @property
    def audio_cache_full_path(self) -> Path:
        return self.project_root / self.audio_cache_dir

    def resolved_import_files(self) -> list[Path]:
        """Configured CSV files, or every ``data/<LEVEL>.csv`` when none are set."""
        if self.import_files:
            root = self.project_root
            return [root / f for f in self.import_files]
        return sorted(
            p for p in self.data_dir.glob("*.csv") if p.stem.upper() in LEVELS
        )

    def to_dict(self) -> dict:
        return {
            "db_path": self.db_path,
            "tts_provider": self.tts_provider,
            "tts_voice": self.tts_voice,
            "audio_cache_dir": self.audio_cache_dir,
            "default_level": self.default_level,
            "import_files": self.import_files,
            "options_per_question": self.options_per_question,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")


def clean_settings_update(body: dict) -> dict:
    """Check an update against the field types; unknown keys are dropped.

    Raises ValidationError on the first bad value, so nothing is applied
    unless every field is valid.
    """
    cleaned = {}
    for key, value in body.items():
        expected = FIELD_TYPES.get(key)
        if expected is None:
            continue
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValidationError(f"Setting '{key}' must be {expected.__name__}")
        cleaned[key] = value

    if "default_level" in cleaned and cleaned["default_level"] not in LEVELS:
        raise ValidationError(
            f"Invalid level: {cleaned['default_level']!r} (expected one of {', '.join(LEVELS)})"
        )
    if "options_per_question" in cleaned and cleaned["options_per_question"] < 1:
        raise ValidationError("Setting 'options_per_question' must be at least 1")
    if "tts_provider" in cleaned and cleaned["tts_provider"] not in TTS_PROVIDERS:
        raise ValidationError(f"Unknown TTS provider: {cleaned['tts_provider']}")
    if "import_files" in cleaned and not all(isinstance(f, str) for f in cleaned["import_files"]):
        raise ValidationError("Setting 'import_files' must be a list of paths")
    return cleaned
