"""Emergency commands: open the emergency menu and dial services."""

import logging

from sathi.commands.registry import CommandRegistry
from sathi.config import (
    EMERGENCY_AMBULANCE,
    EMERGENCY_DISABILITY,
    EMERGENCY_FIRE,
    EMERGENCY_POLICE,
)
from sathi.events.event_bus import EventBus
from sathi.events.types import ActionEvent, ActionType

logger = logging.getLogger(__name__)

CATEGORY = "emergency"

DEFAULT_NUMBERS: dict[str, str] = {
    "police": EMERGENCY_POLICE,
    "fire": EMERGENCY_FIRE,
    "ambulance": EMERGENCY_AMBULANCE,
    "disability support": EMERGENCY_DISABILITY,
}


def tel_uri(number: str) -> str:
    """``tel:`` URI for *number* with spacing and punctuation removed."""
    digits = "".join(ch for ch in number if ch.isdigit() or ch == "+")
    return f"tel:{digits}"


def install_emergency_commands(
    registry: CommandRegistry,
    actions: EventBus[ActionEvent],
    numbers: dict[str, str] | None = None,
) -> None:
    """Register the emergency command set on *registry*.

    The specific ``call ...`` commands are registered before the bare
    ``emergency`` command.
    """
    numbers = {**DEFAULT_NUMBERS, **(numbers or {})}

    def make_dialer(service: str):
        number = numbers[service]

        async def dial() -> str:
            logger.info("Emergency dial: %s (%s)", service, number)
            await actions.emit(
                ActionEvent(
                    kind=ActionType.DIAL,
                    target=tel_uri(number),
                    data={"service": service, "number": number},
                )
            )
            return f"Calling {service} at {number}."

        return dial

    for service in numbers:
        registry.add(
            f"call {service}",
            make_dialer(service),
            description=f"call {service}",
            category=CATEGORY,
        )

    async def show_menu() -> str:
        await actions.emit(
            ActionEvent(kind=ActionType.SHOW_EMERGENCY_MENU, data={"numbers": dict(numbers)})
        )
        options = ", ".join(f"call {service}" for service in numbers)
        return f"Emergency menu opened. Say {options}."

    registry.add(r"\bemergency\b", show_menu, description="open the emergency menu", category=CATEGORY)
