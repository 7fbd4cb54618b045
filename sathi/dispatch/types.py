"""Dispatch state machine and turn outcome models."""

from enum import Enum

from pydantic import BaseModel, Field


class DispatchState(str, Enum):
    """Where the dispatch loop is in handling the current turn."""

    IDLE = "idle"
    MATCHING = "matching"
    HANDLER_EXECUTING = "handler_executing"
    AI_PENDING = "ai_pending"
    AI_RESPONDED = "ai_responded"
    AI_FAILED = "ai_failed"


class TurnOrigin(str, Enum):
    """Where a turn's text came from."""

    SPEECH = "speech"
    TYPED = "typed"


class OutcomeKind(str, Enum):
    """How a turn was resolved."""

    MATCHED = "matched"
    HANDLER_FAILED = "handler_failed"
    AI_REPLY = "ai_reply"
    APOLOGY = "apology"
    REJECTED = "rejected"
    STALE = "stale"


class DispatchOutcome(BaseModel):
    """Result of one ``DispatchLoop.handle`` call.

    ``reply`` is the text appended to the chat log and spoken, or ``None``
    when nothing was appended (rejected empty input, stale AI reply).
    """

    kind: OutcomeKind
    transcript: str
    reply: str | None = None
    pattern: str | None = None
    groups: list[str] = Field(default_factory=list)
    origin: TurnOrigin = TurnOrigin.TYPED
