"""Key-value persisted user settings.

Settings are read once at startup and written back on every change.  A
missing or corrupt file yields defaults rather than an error.
"""

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field, ValidationError

from sathi.config import SETTINGS_FILE

logger = logging.getLogger(__name__)

FONT_SCALE_MIN = 0.8
FONT_SCALE_MAX = 2.0
FONT_SCALE_STEP = 0.1

RECOGNITION_LOCALES: dict[str, str] = {
    "en": "en-US",
    "ne": "ne-NP",
}


class AccessibilityProfile(str, Enum):
    """Disability profile the interface is tuned for."""

    DEFAULT = "default"
    BLIND = "blind"
    DEAF = "deaf"
    MOTOR = "motor"
    COGNITIVE = "cognitive"


class Settings(BaseModel):
    """User settings persisted between sessions."""

    language: Literal["en", "ne"] = "en"
    tts_enabled: bool = True
    voice_enabled: bool = False
    always_listening: bool = False
    accessibility_profile: AccessibilityProfile = AccessibilityProfile.DEFAULT
    font_scale: float = Field(default=1.0, ge=FONT_SCALE_MIN, le=FONT_SCALE_MAX)
    high_contrast: bool = False
    dark_mode: bool = False

    @property
    def locale(self) -> str:
        """BCP-47 tag used for recognition and speech in this language."""
        return RECOGNITION_LOCALES[self.language]


def next_font_scale(current: float, direction: int) -> float:
    """Grow (``+1``) or shrink (``-1``) *current* by one step, clamped to range."""
    scale = current + direction * FONT_SCALE_STEP
    return round(min(FONT_SCALE_MAX, max(FONT_SCALE_MIN, scale)), 1)


SettingsListener = Callable[[Settings, set[str]], None]


class SettingsStore:
    """Loads, validates, persists and broadcasts ``Settings``."""

    def __init__(self, path: Path | str = SETTINGS_FILE) -> None:
        self._path = Path(path)
        self._settings = Settings()
        self._listeners: list[SettingsListener] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> Settings:
        return self._settings

    def load(self) -> Settings:
        """Read settings from disk, falling back to defaults."""
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self._settings = Settings.model_validate(raw)
            logger.info("Loaded settings from %s", self._path)
        except FileNotFoundError:
            self._settings = Settings()
            logger.debug("No settings file at %s, using defaults", self._path)
        except (ValueError, ValidationError, OSError):
            self._settings = Settings()
            logger.warning("Could not read settings from %s, using defaults", self._path, exc_info=True)
        return self._settings

    def update(self, **changes: Any) -> Settings:
        """Apply *changes*, persist them and notify listeners.

        Raises:
            pydantic.ValidationError: if a value is invalid; nothing is saved.
        """
        unknown = set(changes) - set(Settings.model_fields)
        if unknown:
            raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")

        updated = Settings.model_validate({**self._settings.model_dump(), **changes})
        changed = {
            key
            for key in changes
            if getattr(updated, key) != getattr(self._settings, key)
        }
        self._settings = updated
        if not changed:
            return updated

        self.save()
        for listener in list(self._listeners):
            try:
                listener(updated, changed)
            except Exception:
                logger.warning("Settings listener failed", exc_info=True)
        return updated

    def save(self) -> None:
        """Write settings atomically; failures are logged, not raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self._settings.model_dump_json(indent=2))
            os.replace(tmp_name, self._path)
        except OSError:
            logger.warning("Could not save settings to %s", self._path, exc_info=True)

    def add_listener(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SettingsListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass
