"""AI fallback responders for transcripts that match no command."""

from sathi.ai.prompt import PromptBuilder
from sathi.ai.responder import AIResponder
from sathi.ai.responder_factory import create_ai_responder

__all__ = ["AIResponder", "PromptBuilder", "create_ai_responder"]
