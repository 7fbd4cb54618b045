"""Speech-recognition subsystem."""

from sathi.stt.engine import RecognitionEngine
from sathi.stt.microphone import MicrophoneCapture
from sathi.stt.session import RecognitionSession
from sathi.stt.types import (
    EndReason,
    RecognitionConfig,
    RecognitionErrorCode,
    RecognitionResult,
    SessionState,
    TranscriptEvent,
)
from sathi.stt.whisper_engine import WhisperRecognitionEngine

__all__ = [
    "EndReason",
    "MicrophoneCapture",
    "RecognitionConfig",
    "RecognitionEngine",
    "RecognitionErrorCode",
    "RecognitionResult",
    "RecognitionSession",
    "SessionState",
    "TranscriptEvent",
    "WhisperRecognitionEngine",
]
