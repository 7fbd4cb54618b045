"""ElevenLabs synthesizer: HTTP synthesis to PCM, local playback via AudioPlayer.

ElevenLabs has no pitch control; ``Utterance.pitch`` is ignored.  The
utterance rate maps onto the ``speed`` voice setting, which ElevenLabs
clamps to 0.7-1.2.
"""

import asyncio
import logging
import time

import httpx

from sathi.config import (
    ELEVENLABS_API_KEY,
    ELEVENLABS_BASE_URL,
    TTS_HEALTH_CHECK_INTERVAL,
    TTS_MODEL,
    TTS_TIMEOUT,
    TTS_VOICE_ID,
)
from sathi.errors import SynthesisError
from sathi.tts.audio_player import AudioPlayer
from sathi.tts.synthesizer import Synthesizer
from sathi.tts.types import Utterance, Voice

logger = logging.getLogger(__name__)

_MIN_SPEED = 0.7
_MAX_SPEED = 1.2


class ElevenLabsSynthesizer(Synthesizer):
    """ElevenLabs TTS with health checking and graceful degradation."""

    def __init__(self, player: AudioPlayer | None = None) -> None:
        self._player = player or AudioPlayer()
        self._api_available: bool = False
        self._last_health_check: float = 0.0
        self._client: httpx.AsyncClient | None = None
        self._voices: list[Voice] = []

    async def start(self) -> None:
        """Probe the output device, create the HTTP client, check health, load voices."""
        await self._player.start()

        if not ELEVENLABS_API_KEY:
            self._api_available = False
            logger.info("No ElevenLabs API key, speech output disabled")
            return

        self._client = httpx.AsyncClient(
            base_url=ELEVENLABS_BASE_URL,
            timeout=TTS_TIMEOUT,
            headers={"xi-api-key": ELEVENLABS_API_KEY},
        )
        await self._check_health()
        if self._api_available:
            await self._load_voices()

    async def stop(self) -> None:
        await self._player.stop()
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_available(self) -> bool:
        return self._api_available and self._player.is_available

    @property
    def synthesizer_name(self) -> str:
        return "elevenlabs"

    def voices(self) -> list[Voice]:
        return list(self._voices)

    def cancel(self) -> None:
        self._player.interrupt()

    async def speak(self, utterance: Utterance) -> None:
        await self._maybe_recheck_health()
        if not self._api_available or not self._client:
            raise SynthesisError("ElevenLabs is not available")

        pcm = await self._synthesize(utterance)
        try:
            await self._player.play(pcm, volume=utterance.volume)
        except asyncio.CancelledError:
            self._player.interrupt()
            raise
        except Exception as exc:
            raise SynthesisError(f"playback failed: {exc}") from exc

    async def _synthesize(self, utterance: Utterance) -> bytes:
        voice_id = utterance.voice.voice_id if utterance.voice else TTS_VOICE_ID
        speed = min(_MAX_SPEED, max(_MIN_SPEED, utterance.rate))
        try:
            response = await self._client.post(
                f"/v1/text-to-speech/{voice_id}",
                json={
                    "text": utterance.text,
                    "model_id": TTS_MODEL,
                    "language_code": utterance.lang.split("-")[0].lower(),
                    "voice_settings": {"speed": speed},
                },
                params={"output_format": "pcm_16000"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("ElevenLabs synthesis failed", exc_info=True)
            raise SynthesisError(f"synthesis failed: {exc}") from exc

        if not response.content:
            raise SynthesisError("synthesis returned no audio")
        return response.content

    async def _load_voices(self) -> None:
        """Fetch the account's voices; keep an entry for the configured default."""
        voices: list[Voice] = []
        try:
            resp = await self._client.get("/v1/voices")
            resp.raise_for_status()
            for item in resp.json().get("voices", []):
                voices.append(
                    Voice(
                        voice_id=item["voice_id"],
                        name=item.get("name", item["voice_id"]),
                        lang=self._voice_language(item),
                        is_default=item["voice_id"] == TTS_VOICE_ID,
                    )
                )
        except (httpx.HTTPError, ValueError, KeyError):
            logger.warning("Could not load ElevenLabs voices", exc_info=True)

        if not any(voice.voice_id == TTS_VOICE_ID for voice in voices):
            voices.append(Voice(voice_id=TTS_VOICE_ID, name="default", is_default=True))
        self._voices = voices
        logger.info("Loaded %d ElevenLabs voices", len(voices))

    @staticmethod
    def _voice_language(item: dict) -> str:
        """Best-effort BCP-47 tag for an ElevenLabs voice record."""
        for verified in item.get("verified_languages") or []:
            locale = verified.get("locale") or verified.get("language")
            if locale:
                return str(locale)
        labels = item.get("labels") or {}
        return str(labels.get("language") or "en")

    async def _check_health(self) -> None:
        """Validate the API key via GET /v1/user."""
        self._last_health_check = time.monotonic()
        if not self._client:
            self._api_available = False
            return
        try:
            resp = await self._client.get("/v1/user")
            self._api_available = resp.status_code == 200
            if self._api_available:
                logger.info(
                    "ElevenLabs available at %s (voice: %s, model: %s)",
                    ELEVENLABS_BASE_URL,
                    TTS_VOICE_ID,
                    TTS_MODEL,
                )
            else:
                logger.warning(
                    "ElevenLabs returned status %d, speech output unavailable",
                    resp.status_code,
                )
        except (httpx.ConnectError, httpx.TimeoutException, OSError) as exc:
            self._api_available = False
            logger.warning("ElevenLabs not available at %s: %s", ELEVENLABS_BASE_URL, exc)

    async def _maybe_recheck_health(self) -> None:
        if not self._api_available:
            elapsed = time.monotonic() - self._last_health_check
            if elapsed >= TTS_HEALTH_CHECK_INTERVAL:
                await self._check_health()
