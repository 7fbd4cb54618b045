"""Persisted user settings."""

from sathi.settings.store import (
    AccessibilityProfile,
    Settings,
    SettingsStore,
    next_font_scale,
)

__all__ = ["AccessibilityProfile", "Settings", "SettingsStore", "next_font_scale"]
