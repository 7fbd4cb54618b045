"""Transcript dispatch: command matching, AI fallback and the chat log."""

from sathi.dispatch.chat_log import ChatLog
from sathi.dispatch.loop import DispatchLoop
from sathi.dispatch.types import DispatchOutcome, DispatchState, OutcomeKind, TurnOrigin

__all__ = [
    "ChatLog",
    "DispatchLoop",
    "DispatchOutcome",
    "DispatchState",
    "OutcomeKind",
    "TurnOrigin",
]
