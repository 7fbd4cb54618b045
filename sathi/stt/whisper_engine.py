"""Whisper-backed recognition engine: microphone capture plus HTTP transcription.

Captures one utterance with energy VAD, uploads it as WAV to an
OpenAI-compatible ``/v1/audio/transcriptions`` endpoint and yields a single
final result.  Whisper has no interim hypotheses, so no interim results are
produced.
"""

import io
import logging
import time
import wave
from typing import AsyncIterator

import httpx
import numpy as np

from sathi.config import (
    AUDIO_SAMPLE_RATE,
    STT_API_KEY,
    STT_BASE_URL,
    STT_HEALTH_CHECK_INTERVAL,
    STT_MODEL,
    STT_TIMEOUT,
)
from sathi.errors import RecognitionError
from sathi.stt.engine import RecognitionEngine
from sathi.stt.microphone import MicrophoneCapture
from sathi.stt.types import RecognitionConfig, RecognitionErrorCode, RecognitionResult

logger = logging.getLogger(__name__)


class WhisperRecognitionEngine(RecognitionEngine):
    """Microphone + Whisper API recognition with health checking."""

    def __init__(self, microphone: MicrophoneCapture | None = None) -> None:
        self._microphone = microphone or MicrophoneCapture()
        self._api_available: bool = False
        self._last_health_check: float = 0.0
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Probe the microphone, create the HTTP client and run a health check."""
        await self._microphone.start()

        if not STT_API_KEY:
            self._api_available = False
            logger.info("No STT API key, speech recognition disabled")
            return

        self._client = httpx.AsyncClient(
            base_url=STT_BASE_URL,
            timeout=STT_TIMEOUT,
            headers={"Authorization": f"Bearer {STT_API_KEY}"},
        )
        await self._check_health()

    async def stop(self) -> None:
        await self._microphone.stop()
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_available(self) -> bool:
        return self._api_available and self._microphone.is_available

    @property
    def engine_name(self) -> str:
        return "whisper"

    def abort(self) -> None:
        self._microphone.cancel()

    async def listen(self, config: RecognitionConfig) -> AsyncIterator[RecognitionResult]:
        await self._maybe_recheck_health()
        if not self._api_available or not self._client:
            raise RecognitionError(RecognitionErrorCode.NETWORK.value, "transcription API unavailable")

        pcm = await self._microphone.capture_utterance()
        text, confidence = await self._transcribe(pcm, config.language)
        if not text:
            raise RecognitionError(RecognitionErrorCode.NO_SPEECH.value)

        logger.debug("Whisper transcript (%.2f): %s", confidence, text)
        yield RecognitionResult(transcript=text, confidence=confidence, is_final=True)

    async def _transcribe(self, pcm: bytes, language: str) -> tuple[str, float]:
        """Upload PCM audio and return ``(text, confidence)``."""
        try:
            response = await self._client.post(
                "/v1/audio/transcriptions",
                data={
                    "model": STT_MODEL,
                    "language": language.split("-")[0].lower(),
                    "response_format": "verbose_json",
                },
                files={"file": ("audio.wav", self._wrap_wav(pcm), "audio/wav")},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            code = (
                RecognitionErrorCode.NOT_ALLOWED
                if status in (401, 403)
                else RecognitionErrorCode.NETWORK
            )
            raise RecognitionError(code.value, f"HTTP {status}") from exc
        except (httpx.HTTPError, OSError) as exc:
            raise RecognitionError(RecognitionErrorCode.NETWORK.value, str(exc)) from exc
        except ValueError as exc:
            raise RecognitionError(RecognitionErrorCode.NETWORK.value, "malformed response") from exc

        text = str(payload.get("text", "")).strip()
        return text, self.confidence_from_segments(payload.get("segments") or [])

    @staticmethod
    def confidence_from_segments(segments: list[dict]) -> float:
        """Mean per-segment probability from Whisper's ``avg_logprob`` values.

        Returns 1.0 when the response carries no segment detail.
        """
        logprobs = [
            float(segment["avg_logprob"])
            for segment in segments
            if isinstance(segment, dict) and "avg_logprob" in segment
        ]
        if not logprobs:
            return 1.0
        probability = float(np.mean(np.exp(np.array(logprobs))))
        return min(1.0, max(0.0, probability))

    async def _check_health(self) -> None:
        """Validate the API key via GET /v1/models."""
        self._last_health_check = time.monotonic()
        if not self._client:
            self._api_available = False
            return
        try:
            resp = await self._client.get("/v1/models")
            self._api_available = resp.status_code == 200
            if self._api_available:
                logger.info("Whisper available at %s (model: %s)", STT_BASE_URL, STT_MODEL)
            else:
                logger.warning(
                    "Whisper API returned status %d, recognition unavailable",
                    resp.status_code,
                )
        except (httpx.ConnectError, httpx.TimeoutException, OSError) as exc:
            self._api_available = False
            logger.warning("Whisper API not available at %s: %s", STT_BASE_URL, exc)

    async def _maybe_recheck_health(self) -> None:
        if not self._api_available:
            elapsed = time.monotonic() - self._last_health_check
            if elapsed >= STT_HEALTH_CHECK_INTERVAL:
                await self._check_health()

    @staticmethod
    def _wrap_wav(pcm_bytes: bytes, sample_rate: int = AUDIO_SAMPLE_RATE) -> io.BytesIO:
        """Wrap raw PCM int16 bytes in a WAV header."""
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(sample_rate)
            wf.writeframes(pcm_bytes)
        buf.seek(0)
        return buf
