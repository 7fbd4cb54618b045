"""Microphone audio capture with energy-based voice activity detection."""

import asyncio
import logging
import threading

import numpy as np

from sathi.config import (
    AUDIO_SAMPLE_RATE,
    STT_LISTEN_TIMEOUT,
    STT_MAX_RECORD_DURATION,
    STT_SILENCE_DURATION,
    STT_SILENCE_THRESHOLD,
)
from sathi.errors import RecognitionError
from sathi.stt.types import RecognitionErrorCode

logger = logging.getLogger(__name__)

_CHUNK_DURATION = 0.1  # seconds of audio per read


class MicrophoneCapture:
    """Captures one utterance from the default input device using sounddevice.

    Probes for PortAudio and an input device at start and degrades
    gracefully if either is missing.
    Capture runs in a worker thread; ``cancel()`` sets a flag the thread
    checks between chunks.
    """

    def __init__(self) -> None:
        self._available: bool = False
        self._listening: bool = False
        self._cancel = threading.Event()

    async def start(self) -> None:
        """Probe for an input device.  No-op if unavailable."""
        try:
            import sounddevice as sd

            sd.query_devices(kind="input")
            self._available = True
            logger.info("Microphone input device detected, capture enabled")
        except Exception:
            self._available = False
            logger.warning("No microphone input device, capture disabled")

    async def stop(self) -> None:
        self.cancel()
        self._listening = False
        self._available = False

    @property
    def is_available(self) -> bool:
        return self._available

    @property
    def is_listening(self) -> bool:
        return self._listening

    def cancel(self) -> None:
        """Ask an in-progress capture to stop at the next chunk boundary."""
        self._cancel.set()

    async def capture_utterance(
        self,
        *,
        listen_timeout: float | None = None,
        max_duration: float | None = None,
        silence_threshold: float | None = None,
        silence_duration: float | None = None,
        sample_rate: int | None = None,
    ) -> bytes:
        """Record until trailing silence or *max_duration*.

        Returns PCM 16-bit mono bytes.

        Raises:
            RecognitionError: ``no-speech`` if nobody spoke within the listen
                timeout, ``aborted`` if cancelled before speech, and
                ``audio-capture`` if the device failed.
        """
        if not self._available:
            raise RecognitionError(RecognitionErrorCode.AUDIO_CAPTURE.value, "no input device")

        self._cancel.clear()
        self._listening = True
        try:
            return await asyncio.to_thread(
                self._capture_sync,
                listen_timeout or STT_LISTEN_TIMEOUT,
                max_duration or STT_MAX_RECORD_DURATION,
                silence_threshold or STT_SILENCE_THRESHOLD,
                silence_duration or STT_SILENCE_DURATION,
                sample_rate or AUDIO_SAMPLE_RATE,
            )
        finally:
            self._listening = False

    def _capture_sync(
        self,
        listen_timeout: float,
        max_duration: float,
        silence_threshold: float,
        silence_duration: float,
        sample_rate: int,
    ) -> bytes:
        """Blocking capture, run in a worker thread.

        Phase 1 waits for RMS to rise above the threshold; phase 2 records
        until RMS stays below it for *silence_duration* seconds.
        """
        import sounddevice as sd

        frames: list[np.ndarray] = []
        chunk_samples = int(sample_rate * _CHUNK_DURATION)
        waited = 0.0
        recorded = 0.0
        silent_for = 0.0

        try:
            with sd.InputStream(
                samplerate=sample_rate,
                channels=1,
                dtype="int16",
                blocksize=chunk_samples,
            ) as stream:
                while waited < listen_timeout:
                    if self._cancel.is_set():
                        raise RecognitionError(RecognitionErrorCode.ABORTED.value)
                    data, _overflowed = stream.read(chunk_samples)
                    waited += _CHUNK_DURATION
                    if self.compute_rms(data) > silence_threshold:
                        frames.append(data.copy())
                        recorded += _CHUNK_DURATION
                        break

                if not frames:
                    raise RecognitionError(RecognitionErrorCode.NO_SPEECH.value)

                while recorded < max_duration and not self._cancel.is_set():
                    data, _overflowed = stream.read(chunk_samples)
                    frames.append(data.copy())
                    recorded += _CHUNK_DURATION
                    if self.compute_rms(data) < silence_threshold:
                        silent_for += _CHUNK_DURATION
                        if silent_for >= silence_duration:
                            break
                    else:
                        silent_for = 0.0
        except RecognitionError:
            raise
        except Exception as exc:
            logger.warning("Microphone stream error", exc_info=True)
            if not frames:
                raise RecognitionError(
                    RecognitionErrorCode.AUDIO_CAPTURE.value, str(exc)
                ) from exc

        return np.concatenate(frames).tobytes()

    @staticmethod
    def compute_rms(data: np.ndarray) -> float:
        """RMS amplitude of int16 audio normalized to 0.0-1.0."""
        samples = data.astype(np.float32) / 32768.0
        return float(np.sqrt(np.mean(samples**2)))
