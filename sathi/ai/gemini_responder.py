"""Gemini ``generateContent`` client used as the default AI fallback."""

import logging
import time

import httpx

from sathi.ai.responder import AIResponder
from sathi.config import (
    AI_HEALTH_CHECK_INTERVAL,
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    GEMINI_MODEL,
    GEMINI_TIMEOUT,
)
from sathi.errors import AIFallbackError

logger = logging.getLogger(__name__)

_GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}


class GeminiResponder(AIResponder):
    """Google Gemini REST client with health checking."""

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self._api_key = GEMINI_API_KEY if api_key is None else api_key
        self._model = model or GEMINI_MODEL
        self._available: bool = False
        self._last_health_check: float = 0.0
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if not self._api_key:
            self._available = False
            logger.info("No Gemini API key, AI fallback disabled")
            return

        self._client = httpx.AsyncClient(
            base_url=GEMINI_BASE_URL,
            timeout=GEMINI_TIMEOUT,
            headers={"x-goog-api-key": self._api_key},
        )
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
        return "gemini"

    async def respond(self, prompt: str) -> str:
        if not self._api_key:
            raise AIFallbackError("Gemini API key not set")

        await self._maybe_recheck_health()
        if not self._available or not self._client:
            raise AIFallbackError("Gemini is not available")

        try:
            response = await self._client.post(
                f"/v1beta/models/{self._model}:generateContent",
                json={
                    "contents": [{"parts": [{"text": prompt}]}],
                    "generationConfig": _GENERATION_CONFIG,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise AIFallbackError("Gemini request timed out", status_code=408) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise AIFallbackError(f"Gemini returned status {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise AIFallbackError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise AIFallbackError("Gemini returned invalid JSON") from exc

        return self.extract_text(data)

    @staticmethod
    def extract_text(data: dict) -> str:
        """Pull ``candidates[0].content.parts[*].text`` out of a response."""
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise AIFallbackError("Gemini response has no candidates") from exc
        if not text.strip():
            raise AIFallbackError("Gemini returned an empty reply")
        return text.strip()

    async def _check_health(self) -> None:
        """GET the model resource to validate the key and model name."""
        self._last_health_check = time.monotonic()
        if not self._client:
            self._available = False
            return
        try:
            resp = await self._client.get(f"/v1beta/models/{self._model}")
            self._available = resp.status_code == 200
            if self._available:
                logger.info("Gemini available (model: %s)", self._model)
            else:
                logger.warning("Gemini returned status %d, AI fallback unavailable", resp.status_code)
        except (httpx.ConnectError, httpx.TimeoutException, OSError) as exc:
            self._available = False
            logger.warning("Gemini not reachable at %s: %s", GEMINI_BASE_URL, exc)

    async def _maybe_recheck_health(self) -> None:
        if not self._available:
            elapsed = time.monotonic() - self._last_health_check
            if elapsed >= AI_HEALTH_CHECK_INTERVAL:
                await self._check_health()
