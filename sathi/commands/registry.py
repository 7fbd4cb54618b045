"""Ordered registry mapping spoken command patterns to handlers.

Matching is first-match over registration order, not best-match.  Feature
modules register specific commands before generic catch-alls and rely on
that ordering, so an earlier pattern always wins when several match.
"""

from __future__ import annotations

import logging
import re

from sathi.commands.types import (
    DEFAULT_CATEGORY,
    NO_MATCH,
    Command,
    CommandHandler,
    CommandInfo,
    MatchResult,
)
from sathi.errors import InvalidPatternError

logger = logging.getLogger(__name__)

# Recognizers tend to append sentence punctuation to captures ("contact.").
_CAPTURE_TRAILING = " \t\n.,!?;:"


class CommandRegistry:
    """Stores pattern -> handler bindings and resolves transcripts to them.

    Patterns are unique keys.  Re-adding a pattern replaces its handler and
    options but keeps the slot it was first registered in.
    """

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}

    def add(
        self,
        pattern: str,
        handler: CommandHandler,
        *,
        description: str | None = None,
        category: str = DEFAULT_CATEGORY,
    ) -> Command:
        """Compile *pattern* and register *handler* for it.

        Raises:
            InvalidPatternError: if *pattern* is not a valid regular expression.
        """
        try:
            matcher = re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            raise InvalidPatternError(pattern, str(exc)) from exc

        command = Command(
            pattern=pattern,
            matcher=matcher,
            handler=handler,
            description=description or pattern,
            category=category,
        )
        if pattern in self._commands:
            logger.debug("Replacing command %r", pattern)
        self._commands[pattern] = command
        return command

    def remove(self, pattern: str) -> None:
        """Delete the command registered for *pattern*.  No-op if absent."""
        if self._commands.pop(pattern, None) is not None:
            logger.debug("Removed command %r", pattern)

    def match(self, transcript: str) -> MatchResult:
        """Return the first registered command whose pattern occurs in *transcript*.

        The transcript is trimmed and matched case-insensitively anywhere in
        the text.  Capture groups come from the trimmed text with the
        speaker's casing kept, minus trailing punctuation.
        """
        text = (transcript or "").strip()
        if not text:
            return NO_MATCH

        for command in self._commands.values():
            found = command.matcher.search(text)
            if found is None:
                continue
            groups = tuple(
                (group or "").rstrip(_CAPTURE_TRAILING) for group in found.groups()
            )
            return MatchResult(command, groups, text.lower())

        return NO_MATCH

    def list(self) -> list[CommandInfo]:
        """All registered commands in registration order."""
        return [command.info() for command in self._commands.values()]

    def categories(self) -> dict[str, list[CommandInfo]]:
        """Registered commands grouped by category, both in registration order."""
        grouped: dict[str, list[CommandInfo]] = {}
        for command in self._commands.values():
            grouped.setdefault(command.category, []).append(command.info())
        return grouped

    def get(self, pattern: str) -> Command | None:
        return self._commands.get(pattern)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._commands

    def __len__(self) -> int:
        return len(self._commands)
