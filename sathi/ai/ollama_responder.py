"""Local Ollama responder, for running the AI fallback without a cloud key."""

import logging
import time

import httpx

from sathi.ai.responder import AIResponder
from sathi.config import (
    AI_HEALTH_CHECK_INTERVAL,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    OLLAMA_TIMEOUT,
)
from sathi.errors import AIFallbackError

logger = logging.getLogger(__name__)


class OllamaResponder(AIResponder):
    """Calls Ollama ``/api/generate`` with a non-streaming request."""

    def __init__(self, model: str | None = None) -> None:
        self._model = model or OLLAMA_MODEL
        self._available: bool = False
        self._last_health_check: float = 0.0
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        self._client = httpx.AsyncClient(base_url=OLLAMA_BASE_URL, timeout=OLLAMA_TIMEOUT)
        await self._check_health()

    async def stop(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_available(self) -> bool:
        return self._available

    @property
    def responder_name(self) -> str:
        return "ollama"

    async def respond(self, prompt: str) -> str:
        await self._maybe_recheck_health()
        if not self._available or not self._client:
            raise AIFallbackError("Ollama is not available")

        try:
            response = await self._client.post(
                "/api/generate",
                json={
                    "model": self._model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {"num_predict": 512, "temperature": 0.7},
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise AIFallbackError("Ollama request timed out", status_code=408) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise AIFallbackError(f"Ollama returned status {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise AIFallbackError(f"Ollama request failed: {exc}") from exc
        except ValueError as exc:
            raise AIFallbackError("Ollama returned invalid JSON") from exc

        text = data.get("response", "") if isinstance(data, dict) else ""
        if not isinstance(text, str) or not text.strip():
            raise AIFallbackError("Ollama returned an empty reply")
        return text.strip()

    async def _check_health(self) -> None:
        """Ping Ollama /api/tags."""
        self._last_health_check = time.monotonic()
        if not self._client:
            self._available = False
            return
        try:
            resp = await self._client.get("/api/tags")
            self._available = resp.status_code == 200
            if self._available:
                logger.info("Ollama available at %s (model: %s)", OLLAMA_BASE_URL, self._model)
            else:
                logger.warning("Ollama returned status %d, AI fallback unavailable", resp.status_code)
        except (httpx.ConnectError, httpx.TimeoutException, OSError) as exc:
            self._available = False
            logger.warning("Ollama not available at %s: %s", OLLAMA_BASE_URL, exc)

    async def _maybe_recheck_health(self) -> None:
        if not self._available:
            elapsed = time.monotonic() - self._last_health_check
            if elapsed >= AI_HEALTH_CHECK_INTERVAL:
                await self._check_health()
