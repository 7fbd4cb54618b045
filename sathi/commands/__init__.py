"""Command registry and the built-in command sets."""

from sathi.commands.accessibility import install_accessibility_commands
from sathi.commands.emergency import install_emergency_commands
from sathi.commands.help import install_help_commands
from sathi.commands.navigation import install_navigation_commands
from sathi.commands.registry import CommandRegistry
from sathi.commands.types import NO_MATCH, Command, CommandInfo, MatchResult

__all__ = [
    "NO_MATCH",
    "Command",
    "CommandInfo",
    "CommandRegistry",
    "MatchResult",
    "install_accessibility_commands",
    "install_emergency_commands",
    "install_help_commands",
    "install_navigation_commands",
]
