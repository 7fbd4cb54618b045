"""Accessibility commands: font size, contrast, theme, language, voice control."""

import logging
from typing import Any, Awaitable, Callable

from sathi.commands.registry import CommandRegistry
from sathi.messages import t
from sathi.settings.store import Settings, SettingsStore, next_font_scale

logger = logging.getLogger(__name__)

CATEGORY = "accessibility"

LANGUAGE_ALIASES: dict[str, str] = {
    "english": "en",
    "en": "en",
    "nepali": "ne",
    "nepalese": "ne",
    "ne": "ne",
    "नेपाली": "ne",
    "अंग्रेजी": "en",
}

_LANGUAGE_LABELS = {"en": "English", "ne": "नेपाली"}

SettingsUpdater = Callable[..., Awaitable[Settings]]


def install_accessibility_commands(
    registry: CommandRegistry,
    settings: SettingsStore,
    update_settings: SettingsUpdater,
    *,
    stop_listening: Callable[[], Awaitable[Any]],
    stop_speaking: Callable[[], Any],
) -> None:
    """Register the accessibility command set on *registry*.

    *update_settings* persists and applies a settings change (and publishes
    it to the front end); the handlers never write the store directly.
    """

    async def change_font(direction: int) -> str:
        current = settings.settings.font_scale
        scale = next_font_scale(current, direction)
        if scale == current:
            return f"Font size is already at the {'largest' if direction > 0 else 'smallest'} setting."
        await update_settings(font_scale=scale)
        return f"Font size set to {int(round(scale * 100))} percent."

    async def increase_font() -> str:
        return await change_font(+1)

    async def decrease_font() -> str:
        return await change_font(-1)

    async def set_high_contrast(action: str) -> str:
        enabled = action.lower() in ("enable", "turn on")
        await update_settings(high_contrast=enabled)
        return f"High contrast {'enabled' if enabled else 'disabled'}."

    async def set_dark_mode(action: str) -> str:
        enabled = action.lower() in ("enable", "turn on")
        await update_settings(dark_mode=enabled)
        return f"Dark mode {'enabled' if enabled else 'disabled'}."

    async def change_language(name: str) -> str:
        code = LANGUAGE_ALIASES.get(name.strip().lower())
        if code is None:
            return t("unknown_language", settings.settings.language)
        await update_settings(language=code)
        return t("language_changed", code, language=_LANGUAGE_LABELS[code])

    async def handle_stop_listening() -> str:
        await stop_listening()
        return "Stopped listening."

    def handle_stop_speaking() -> str:
        stop_speaking()
        # An empty confirmation would be spoken and undo the stop.
        return "Okay."

    registry.add(
        r"(?:increase|bigger|larger) (?:the )?(?:font|text)(?: size)?",
        increase_font,
        description="increase font size",
        category=CATEGORY,
    )
    registry.add(
        r"(?:decrease|smaller|reduce) (?:the )?(?:font|text)(?: size)?",
        decrease_font,
        description="decrease font size",
        category=CATEGORY,
    )
    registry.add(
        r"(enable|disable|turn on|turn off) high contrast",
        set_high_contrast,
        description="enable or disable high contrast",
        category=CATEGORY,
    )
    registry.add(
        r"(enable|disable|turn on|turn off) dark mode",
        set_dark_mode,
        description="enable or disable dark mode",
        category=CATEGORY,
    )
    registry.add(
        r"change (?:the )?language to (.+)",
        change_language,
        description="change language to English or Nepali",
        category=CATEGORY,
    )
    registry.add("stop listening", handle_stop_listening, description="stop listening", category=CATEGORY)
    registry.add("stop speaking", handle_stop_speaking, description="stop speaking", category=CATEGORY)
    logger.debug("Accessibility commands installed")
