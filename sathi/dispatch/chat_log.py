"""Bounded chat log with an interim-transcript line."""

import logging
from collections import deque

from sathi.config import CHAT_LOG_MAX_MESSAGES
from sathi.events.event_bus import EventBus
from sathi.events.types import ChatMessage, MessageKind, MessageRole

logger = logging.getLogger(__name__)


class ChatLog:
    """Keeps the most recent chat messages and broadcasts new ones.

    The interim line shows what the recognizer is hearing right now; it is
    never part of the message history.
    """

    def __init__(
        self,
        bus: EventBus[ChatMessage] | None = None,
        max_messages: int = CHAT_LOG_MAX_MESSAGES,
    ) -> None:
        self._bus = bus
        self._messages: deque[ChatMessage] = deque(maxlen=max_messages)
        self._interim: str = ""

    @property
    def bus(self) -> EventBus[ChatMessage] | None:
        return self._bus

    @property
    def interim(self) -> str:
        return self._interim

    def set_interim(self, text: str) -> None:
        self._interim = text

    async def append(self, role: MessageRole, text: str, kind: MessageKind) -> ChatMessage:
        """Record a message and publish it to subscribers."""
        message = ChatMessage(role=role, text=text, kind=kind)
        self._messages.append(message)
        if role == MessageRole.USER:
            self._interim = ""
        logger.debug("Chat %s/%s: %s", role.value, kind.value, text)
        if self._bus is not None:
            await self._bus.emit(message)
        return message

    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def last(self) -> ChatMessage | None:
        return self._messages[-1] if self._messages else None

    def clear(self) -> None:
        self._messages.clear()
        self._interim = ""

    def __len__(self) -> int:
        return len(self._messages)
