"""Fan-out buses and the message/action models that travel on them."""

from sathi.events.event_bus import EventBus
from sathi.events.types import ActionEvent, ActionType, ChatMessage, MessageKind, MessageRole

__all__ = [
    "ActionEvent",
    "ActionType",
    "ChatMessage",
    "EventBus",
    "MessageKind",
    "MessageRole",
]
