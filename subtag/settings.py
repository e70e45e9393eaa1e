"""Application settings, stored as JSON next to the library."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

APP_DIR       = Path.home() / ".subtag"
SETTINGS_PATH = APP_DIR / "settings.json"

SETTINGS_ENV  = "SUBTAG_SETTINGS"
LOG_LEVEL_ENV = "SUBTAG_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AppSettings:
    library_dir: str          = str(APP_DIR / "library")
    lockout_ms: int           = 1000    # hotkey lockout window
    tick_interval_ms: int     = 100     # playback clock polling
    pause_at_end: bool        = True
    translate_language: str   = "en"    # target language for dictionary seeding
    lookup_retries: int       = 3
    lookup_retry_delay: float = 1.0     # seconds between lookup retries
    log_level: str            = "INFO"

    # ------------------------------------------------------------------ validation
    def __post_init__(self) -> None:
        for name in ("lockout_ms", "tick_interval_ms", "lookup_retries"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Setting {name!r} must be a non-negative integer, got {value!r}")
        if self.tick_interval_ms == 0:
            raise ValueError("Setting 'tick_interval_ms' must be positive")
        if self.lookup_retries == 0:
            raise ValueError("Setting 'lookup_retries' must be at least 1")
        if not isinstance(self.lookup_retry_delay, (int, float)) or self.lookup_retry_delay < 0:
            raise ValueError(f"Setting 'lookup_retry_delay' must be >= 0, got {self.lookup_retry_delay!r}")
        if not isinstance(self.pause_at_end, bool):
            raise ValueError(f"Setting 'pause_at_end' must be true or false, got {self.pause_at_end!r}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"Setting 'log_level' must be one of {', '.join(_LOG_LEVELS)}")

    # ------------------------------------------------------------------ io
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AppSettings":
        """Merge ``data`` over the defaults; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data or {}) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, path: Optional[Path] = None) -> None:
        path = Path(path) if path else settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")


def settings_path() -> Path:
    override = os.getenv(SETTINGS_ENV)
    return Path(override) if override else SETTINGS_PATH


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Read settings, writing the defaults on first run.

    A corrupt file falls back to the defaults with a warning; values of the
    wrong type raise ValueError. ``SUBTAG_LOG_LEVEL`` wins over the file.
    """
    path = Path(path) if path else settings_path()
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning("Settings file %s is not a JSON object — using defaults", path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read settings %s: %s — using defaults", path, exc)
        settings = AppSettings.from_dict(data)
    else:
        settings = AppSettings()
        try:
            settings.save(path)  # bootstrap
        except OSError as exc:
            logger.warning("Could not write default settings to %s: %s", path, exc)

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        settings.log_level = env_level
        settings.__post_init__()
    return settings
