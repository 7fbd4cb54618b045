"""Pydantic models and enums for the speech-recognition subsystem."""

import time
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from sathi.config import (
    RECOGNITION_CONTINUOUS,
    RECOGNITION_LANGUAGE,
    RECOGNITION_MAX_ALTERNATIVES,
)


class SessionState(str, Enum):
    """Listening state of a recognition session."""

    IDLE = "idle"
    LISTENING = "listening"


class RecognitionErrorCode(str, Enum):
    """Named error codes reported by the recognition engine."""

    NO_SPEECH = "no-speech"
    NETWORK = "network"
    NOT_ALLOWED = "not-allowed"
    ABORTED = "aborted"
    AUDIO_CAPTURE = "audio-capture"

    @classmethod
    def parse(cls, code: str) -> "RecognitionErrorCode":
        """Map an engine error string to a known code, defaulting to NETWORK."""
        try:
            return cls(code)
        except ValueError:
            return cls.NETWORK


class EndReason(str, Enum):
    """Why a recognition cycle returned to idle."""

    FINAL = "final"
    ERROR = "error"
    STOPPED = "stopped"


class RecognitionConfig(BaseModel):
    """Per-session recognition settings."""

    language: str = RECOGNITION_LANGUAGE
    continuous: bool = RECOGNITION_CONTINUOUS
    interim_results: bool = True
    max_alternatives: int = Field(default=RECOGNITION_MAX_ALTERNATIVES, ge=1)


class RecognitionResult(BaseModel):
    """One raw result tuple as produced by a recognition engine."""

    transcript: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    is_final: bool = True


class TranscriptEvent(BaseModel):
    """A normalized transcript.

    ``text`` is lower-cased and trimmed; ``raw_text`` keeps the recognizer's
    casing so capture groups can preserve it.
    """

    text: str
    raw_text: str
    is_final: bool
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def from_result(cls, result: RecognitionResult) -> "TranscriptEvent":
        raw = result.transcript.strip()
        return cls(
            text=raw.lower(),
            raw_text=raw,
            is_final=result.is_final,
            confidence=result.confidence,
        )


class StartedEvent(BaseModel):
    kind: Literal["started"] = "started"
    cycle: int


class ResultEvent(BaseModel):
    kind: Literal["result"] = "result"
    cycle: int
    transcript: TranscriptEvent


class ErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    cycle: int
    code: RecognitionErrorCode
    detail: str = ""


class EndedEvent(BaseModel):
    kind: Literal["ended"] = "ended"
    cycle: int
    reason: EndReason


RecognitionEvent = Annotated[
    Union[StartedEvent, ResultEvent, ErrorEvent, EndedEvent],
    Field(discriminator="kind"),
]
