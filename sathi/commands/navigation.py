"""Navigation commands: move around the page and drive page controls."""

import logging

from sathi.commands.registry import CommandRegistry
from sathi.events.event_bus import EventBus
from sathi.events.types import ActionEvent, ActionType

logger = logging.getLogger(__name__)

CATEGORY = "navigation"

SECTION_ALIASES: dict[str, str] = {
    "home": "home",
    "main": "home",
    "features": "features",
    "feature": "features",
    "resources": "resources",
    "resource": "resources",
    "contact": "contact",
    "about": "contact",
    "help": "contact",
}

_FILLER_PREFIXES = ("the ", "a ")
_FILLER_SUFFIXES = (" page", " section")


def resolve_section(name: str) -> str:
    """Map a spoken section name to its canonical section id.

    Unknown names are returned normalized so the front end can still try them.
    """
    section = name.strip().lower()
    for prefix in _FILLER_PREFIXES:
        if section.startswith(prefix):
            section = section[len(prefix):]
    for suffix in _FILLER_SUFFIXES:
        if section.endswith(suffix):
            section = section[: -len(suffix)]
    return SECTION_ALIASES.get(section, section)


def install_navigation_commands(registry: CommandRegistry, actions: EventBus[ActionEvent]) -> None:
    """Register the navigation command set on *registry*."""

    async def navigate(target: str) -> str:
        section = resolve_section(target)
        await actions.emit(ActionEvent(kind=ActionType.NAVIGATE, target=section))
        return f"Navigating to {section}."

    async def scroll(direction: str) -> str:
        direction = direction.lower()
        await actions.emit(ActionEvent(kind=ActionType.SCROLL, target=direction))
        return f"Scrolling {direction}."

    async def scroll_to(target: str) -> str:
        await actions.emit(ActionEvent(kind=ActionType.SCROLL_TO, target=target))
        return f"Scrolling to {target}."

    async def click(target: str) -> str:
        await actions.emit(ActionEvent(kind=ActionType.CLICK, target=target))
        return f"Clicking {target}."

    async def read(target: str) -> str:
        await actions.emit(ActionEvent(kind=ActionType.READ, target=target))
        return f"Reading {target}."

    async def type_text(text: str, field: str) -> str:
        await actions.emit(ActionEvent(kind=ActionType.TYPE, target=field, data={"text": text}))
        return f"Typed {text} in {field}."

    async def fill(field: str, text: str) -> str:
        return await type_text(text, field)

    async def search(query: str) -> str:
        await actions.emit(ActionEvent(kind=ActionType.SEARCH, data={"query": query}))
        return f"Searching for {query}."

    async def back() -> str:
        await actions.emit(ActionEvent(kind=ActionType.BACK))
        return "Going back."

    async def refresh() -> str:
        await actions.emit(ActionEvent(kind=ActionType.REFRESH))
        return "Refreshing the page."

    async def close() -> str:
        await actions.emit(ActionEvent(kind=ActionType.CLOSE))
        return "Closing."

    registry.add("navigate to (.+)", navigate, description="navigate to a section", category=CATEGORY)
    registry.add("go to (.+)", navigate, description="go to a section", category=CATEGORY)
    registry.add("show me (.+)", navigate, description="show me a section", category=CATEGORY)
    registry.add(
        r"scroll to (.+)", scroll_to, description="scroll to an element", category=CATEGORY
    )
    registry.add(
        r"scroll (up|down|left|right)",
        scroll,
        description="scroll up, down, left or right",
        category=CATEGORY,
    )
    # Typing comes before click and read so the typed text may contain those words.
    registry.add(
        r"\btype (.+) in (.+)", type_text, description="type text into a field", category=CATEGORY
    )
    registry.add(
        r"\bfill (?:in )?(.+?) with (.+)", fill, description="fill a field with text", category=CATEGORY
    )
    registry.add(r"\bsearch for (.+)", search, description="search the page", category=CATEGORY)
    registry.add(r"\bclick (.+)", click, description="click a button or link", category=CATEGORY)
    registry.add(r"\bread (.+)", read, description="read an element aloud", category=CATEGORY)
    registry.add(r"\b(?:tap|press) (.+)", click, description="tap or press a button", category=CATEGORY)
    registry.add(r"\bspeak (.+)", read, description="speak an element aloud", category=CATEGORY)
    # Single-word commands are anchored so they do not hijack longer questions.
    registry.add(r"^(?:go )?back\W*$", back, description="go back", category=CATEGORY)
    registry.add(
        r"^refresh(?: (?:the )?page)?\W*$", refresh, description="refresh the page", category=CATEGORY
    )
    registry.add(
        r"^close(?: (?:the )?(?:window|dialog|menu|panel))?\W*$",
        close,
        description="close the current dialog",
        category=CATEGORY,
    )
    logger.debug("Navigation commands installed")
