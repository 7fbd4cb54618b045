"""Pydantic models for the speech-output subsystem."""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from sathi.config import (
    RECOGNITION_LANGUAGE,
    TTS_DEFAULT_PITCH,
    TTS_DEFAULT_RATE,
    TTS_DEFAULT_VOLUME,
)


class SpeechState(str, Enum):
    """Operational state of speech output."""

    ACTIVE = "active"
    SPEAKING = "speaking"
    MUTED = "muted"
    DISABLED = "disabled"


class Voice(BaseModel):
    """A voice offered by the synthesizer."""

    voice_id: str
    name: str
    lang: str = "en"
    is_default: bool = False


class SpeechOptions(BaseModel):
    """Per-utterance options merged over the SpeechOutput defaults."""

    model_config = ConfigDict(extra="forbid")

    rate: float = Field(default=TTS_DEFAULT_RATE, gt=0.0, le=4.0)
    pitch: float = Field(default=TTS_DEFAULT_PITCH, ge=0.0, le=2.0)
    volume: float = Field(default=TTS_DEFAULT_VOLUME, ge=0.0, le=1.0)
    lang: str = RECOGNITION_LANGUAGE
    voice: Voice | None = None


class Utterance(BaseModel):
    """One request to vocalize a string."""

    text: str
    rate: float
    pitch: float
    volume: float
    lang: str
    voice: Voice | None = None
    utterance_id: str = Field(default_factory=lambda: str(uuid4()))
