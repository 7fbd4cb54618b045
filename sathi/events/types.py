"""Pydantic models for chat-log messages and UI actions."""

import time
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Who a chat message is attributed to."""

    USER = "user"
    SYSTEM = "system"


class MessageKind(str, Enum):
    """What a chat message represents."""

    TRANSCRIPT = "transcript"
    CONFIRMATION = "confirmation"
    AI_REPLY = "ai_reply"
    APOLOGY = "apology"
    ERROR = "error"
    NOTICE = "notice"


class ChatMessage(BaseModel):
    """One entry in the visible chat log."""

    role: MessageRole
    text: str
    kind: MessageKind
    timestamp: float = Field(default_factory=time.time)
    message_id: str = Field(default_factory=lambda: str(uuid4()))


class ActionType(str, Enum):
    """UI side effects a command handler can request from the front end."""

    NAVIGATE = "navigate"
    SCROLL = "scroll"
    SCROLL_TO = "scroll_to"
    CLICK = "click"
    READ = "read"
    BACK = "back"
    REFRESH = "refresh"
    CLOSE = "close"
    DIAL = "dial"
    SHOW_EMERGENCY_MENU = "show_emergency_menu"
    TYPE = "type"
    SEARCH = "search"
    APPLY_SETTINGS = "apply_settings"
    LISTENING = "listening"
    SPEAKING = "speaking"


class ActionEvent(BaseModel):
    """A UI side effect published by a command handler.

    ``target`` is the element, section, direction or ``tel:`` URI the action
    applies to; ``data`` carries anything else (e.g. the new settings).
    """

    kind: ActionType
    target: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)
