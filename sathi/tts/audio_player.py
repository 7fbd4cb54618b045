"""PCM playback through sounddevice with immediate interrupt."""

import asyncio
import logging

import numpy as np

from sathi.config import AUDIO_SAMPLE_RATE

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays one PCM buffer at a time on the default output device.

    ``play()`` blocks a worker thread until playback finishes;
    ``interrupt()`` stops the device so that thread returns early.
    """

    def __init__(self, sample_rate: int = AUDIO_SAMPLE_RATE) -> None:
        self._sample_rate = sample_rate
        self._audio_available: bool = False
        self._playing: bool = False

    async def start(self) -> None:
        """Probe for PortAudio and an output device."""
        try:
            import sounddevice as sd

            sd.query_devices(kind="output")
            self._audio_available = True
            logger.info("Audio output device detected, playback enabled")
        except Exception:
            self._audio_available = False
            logger.warning("No audio output device, playback disabled")

    async def stop(self) -> None:
        self.interrupt()
        self._audio_available = False

    @property
    def is_available(self) -> bool:
        return self._audio_available

    @property
    def is_playing(self) -> bool:
        return self._playing

    async def play(self, pcm_bytes: bytes, *, volume: float = 1.0) -> None:
        """Play int16 PCM at *volume* (0.0-1.0), returning when it ends."""
        if not self._audio_available or not pcm_bytes:
            return
        self._playing = True
        try:
            await asyncio.to_thread(self._play_sync, pcm_bytes, volume)
        finally:
            self._playing = False

    def interrupt(self) -> None:
        """Stop whatever is playing."""
        if not self._audio_available:
            return
        try:
            import sounddevice as sd

            sd.stop()
        except Exception:
            logger.debug("sounddevice stop failed", exc_info=True)

    @staticmethod
    def scale(pcm_bytes: bytes, volume: float) -> np.ndarray:
        """Convert int16 PCM to float32 samples scaled by *volume*."""
        samples = np.frombuffer(pcm_bytes, dtype=np.int16).astype(np.float32) / 32768.0
        return np.clip(samples * volume, -1.0, 1.0)

    def _play_sync(self, pcm_bytes: bytes, volume: float) -> None:
        import sounddevice as sd

        sd.play(self.scale(pcm_bytes, volume), samplerate=self._sample_rate)
        sd.wait()
