"""Abstract base class for speech synthesizers.

SpeechOutput drives a synthesizer without knowing which one is active.
Synthesizers handle their own health checking and graceful degradation.
"""

from abc import ABC, abstractmethod

from sathi.tts.types import Utterance, Voice


class Synthesizer(ABC):
    """Abstract base class for speech synthesizers.

    ``speak()`` returns once the utterance has finished playing and raises
    ``SynthesisError`` when it could not be produced or played.  Cancelling
    the awaiting task must stop playback.
    """

    @abstractmethod
    async def start(self) -> None:
        """Initialize the synthesizer (HTTP clients, audio device, voices)."""

    @abstractmethod
    async def stop(self) -> None:
        """Shut down the synthesizer and release resources."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the synthesizer can currently speak."""

    @abstractmethod
    def voices(self) -> list[Voice]:
        """Voices available for selection, possibly empty."""

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """Synthesize and play *utterance*, returning when playback ends."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop current playback immediately.  Safe when nothing is playing."""

    @property
    @abstractmethod
    def synthesizer_name(self) -> str:
        """Human-readable synthesizer name for health/status display."""
