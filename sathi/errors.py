"""Exception hierarchy for Sewa Sathi.

Only ``InvalidPatternError`` is meant to reach setup code.  Everything else is
caught at the boundary of the component that issued the call and turned into
a chat message or a callback.
"""


class SathiError(Exception):
    """Base class for all Sewa Sathi errors."""


class UnsupportedCapabilityError(SathiError):
    """A recognition or synthesis engine is not available on this host."""

    def __init__(self, capability: str, reason: str = "") -> None:
        self.capability = capability
        self.reason = reason
        message = f"{capability} is not supported"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RecognitionError(SathiError):
    """A speech-recognition cycle failed with a named error code."""

    def __init__(self, code: str, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"recognition error '{code}'" + (f": {detail}" if detail else ""))


class SynthesisError(SathiError):
    """The speech synthesizer failed to produce or play an utterance."""


class AIFallbackError(SathiError):
    """The AI text-completion endpoint could not produce a reply."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InvalidPatternError(SathiError):
    """A command pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"invalid command pattern {pattern!r}: {reason}")
