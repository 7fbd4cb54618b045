"""Command and match-result types for the command registry."""

import re
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel

# Handlers receive the captured groups positionally.  They may return a
# confirmation string (or an awaitable of one) to be spoken instead of the
# generic confirmation.
CommandHandler = Callable[..., Union[str, None, Awaitable[Union[str, None]]]]

DEFAULT_CATEGORY = "general"


class Command:
    """A registered pattern and the handler it triggers.

    ``pattern`` keeps the source text (the registry key); ``matcher`` is the
    case-insensitive regex compiled once at registration time.
    """

    def __init__(
        self,
        pattern: str,
        matcher: "re.Pattern[str]",
        handler: CommandHandler,
        description: str,
        category: str = DEFAULT_CATEGORY,
    ) -> None:
        self.pattern = pattern
        self.matcher = matcher
        self.handler = handler
        self.description = description
        self.category = category

    def info(self) -> "CommandInfo":
        return CommandInfo(
            pattern=self.pattern,
            description=self.description,
            category=self.category,
        )

    def __repr__(self) -> str:
        return f"Command(pattern={self.pattern!r}, category={self.category!r})"


class CommandInfo(BaseModel):
    """Serializable view of a command for help listings and the HTTP API."""

    pattern: str
    description: str
    category: str


class MatchResult:
    """Outcome of ``CommandRegistry.match``.

    Falsy when nothing matched; the shared ``NO_MATCH`` instance is returned
    in that case.
    """

    def __init__(
        self,
        command: Command | None,
        groups: tuple[str, ...] = (),
        transcript: str = "",
    ) -> None:
        self.command = command
        self.groups = groups
        self.transcript = transcript

    @property
    def matched(self) -> bool:
        return self.command is not None

    @property
    def pattern(self) -> str | None:
        return self.command.pattern if self.command is not None else None

    def __bool__(self) -> bool:
        return self.matched

    def __repr__(self) -> str:
        if self.command is None:
            return "NO_MATCH"
        return f"MatchResult(pattern={self.command.pattern!r}, groups={self.groups!r})"

    def as_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "groups": list(self.groups)}


NO_MATCH = MatchResult(None)
