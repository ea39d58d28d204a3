"""Load runtime settings from settings.json. Single source of truth for deployment knobs."""

import json
import os
import shutil
import threading

from pydantic import BaseModel, ConfigDict, Field

from models import JobSource

_dir = os.path.dirname(__file__)
SETTINGS_PATH = os.path.join(_dir, "settings.json")
_EXAMPLE_PATH = os.path.join(_dir, "settings.example.json")


class Settings(BaseModel):
    """Deployment settings. Missing keys take these defaults; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    db_path: str = "jobs.db"
    archive_days: int = Field(default=90, ge=1)
    # None means every source with a scraper config
    enabled_sources: list[JobSource] | None = None
    schedule_hours: int = Field(default=6, ge=1)
    headless: bool = True
    reports_dir: str = "reports/"


_settings: Settings | None = None
_lock = threading.Lock()


def load_settings(path: str = SETTINGS_PATH) -> Settings:
    """Read and validate path, seeding it from settings.example.json when missing.

    Raises pydantic.ValidationError (a ValueError) naming each bad key.
    """
    if not os.path.exists(path) and os.path.exists(_EXAMPLE_PATH):
        shutil.copy2(_EXAMPLE_PATH, path)
    with open(path) as f:
        return Settings.model_validate(json.load(f))


def get_settings(path: str = SETTINGS_PATH) -> Settings:
    """Get the cached settings, loading from disk on first access."""
    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings(path)
        return _settings


def reload_settings():
    """Clear the cached settings so the next get_settings() re-reads from disk."""
    global _settings
    with _lock:
        _settings = None
