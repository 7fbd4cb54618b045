"""Help command: lists what the assistant can do."""

from sathi.commands.registry import CommandRegistry

CATEGORY = "help"


def describe_commands(registry: CommandRegistry) -> str:
    """One sentence per category naming its command descriptions."""
    parts = ["Here is what I can do."]
    for category, commands in registry.categories().items():
        if category == CATEGORY:
            continue
        names = ", ".join(info.description for info in commands)
        parts.append(f"{category.capitalize()}: {names}.")
    return " ".join(parts)


def install_help_commands(registry: CommandRegistry) -> None:
    def show_help() -> str:
        return describe_commands(registry)

    registry.add(r"\bhelp\b", show_help, description="list available commands", category=CATEGORY)
    registry.add("what can you do", show_help, description="list available commands", category=CATEGORY)
