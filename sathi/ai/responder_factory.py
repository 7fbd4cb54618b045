"""AI responder factory: picks the implementation named by SATHI_AI_PROVIDER."""

import logging

from sathi.ai.responder import AIResponder
from sathi.config import AI_PROVIDER

logger = logging.getLogger(__name__)


def create_ai_responder(provider: str | None = None) -> AIResponder:
    """Create the AI responder for *provider* (default: ``AI_PROVIDER``).

    Returns:
        OllamaResponder for ``"ollama"``, GeminiResponder otherwise.
    """
    name = (provider or AI_PROVIDER).lower()

    if name == "ollama":
        from sathi.ai.ollama_responder import OllamaResponder

        logger.info("Creating Ollama AI responder")
        return OllamaResponder()

    if name != "gemini":
        logger.warning("Unknown AI provider %r, using Gemini", name)

    from sathi.ai.gemini_responder import GeminiResponder

    logger.info("Creating Gemini AI responder")
    return GeminiResponder()
