"""Abstract base class for AI fallback responders.

The DispatchLoop forwards transcripts that match no command to a responder.
Responders handle their own health checking; ``respond()`` raises
``AIFallbackError`` for every failure so the loop can apologize instead of
crashing.
"""

from abc import ABC, abstractmethod


class AIResponder(ABC):
    """Abstract base class for AI text-completion responders."""

    @abstractmethod
    async def start(self) -> None:
        """Initialize the responder (HTTP client, health check)."""

    @abstractmethod
    async def stop(self) -> None:
        """Shut down the responder and release resources."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the endpoint is currently believed reachable."""

    @abstractmethod
    async def respond(self, prompt: str) -> str:
        """Return the model's free-text reply to *prompt*.

        Raises:
            AIFallbackError: on HTTP error status, timeout, malformed payload
                or missing credentials.
        """

    @property
    @abstractmethod
    def responder_name(self) -> str:
        """Human-readable responder name for health/status display."""
