"""Abstract base class for speech-recognition engines.

A RecognitionSession drives an engine one cycle at a time without knowing
which engine is active.  Engines handle their own health checking and
graceful degradation internally, the same way the synthesizers and AI
responders do.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from sathi.stt.types import RecognitionConfig, RecognitionResult


class RecognitionEngine(ABC):
    """Abstract base class for speech-recognition engines.

    ``listen()`` yields zero or more interim results followed by one final
    result.  Failures are raised as ``RecognitionError`` with a named code;
    the session turns them into error events.
    """

    @abstractmethod
    async def start(self) -> None:
        """Initialize the engine (devices, HTTP clients, health checks)."""

    @abstractmethod
    async def stop(self) -> None:
        """Shut down the engine and release resources."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can currently recognize speech."""

    @abstractmethod
    def listen(self, config: RecognitionConfig) -> AsyncIterator[RecognitionResult]:
        """Run one recognition cycle, yielding results as they arrive."""

    @abstractmethod
    def abort(self) -> None:
        """Signal an in-progress ``listen()`` to stop capturing.

        Must be safe to call from the event loop while capture runs in a
        worker thread, and safe to call when nothing is listening.
        """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine name for health/status display."""
