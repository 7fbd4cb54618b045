"""Tests for sathi.stt.microphone — utterance capture with energy VAD."""

import sys
import types

import numpy as np
import pytest

from sathi.errors import RecognitionError
from sathi.stt.microphone import MicrophoneCapture


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_CHUNK = 1600  # 100ms at 16kHz


def _silent_frame(n_samples: int = _CHUNK) -> np.ndarray:
    return np.zeros((n_samples, 1), dtype=np.int16)


def _loud_frame(n_samples: int = _CHUNK, amplitude: int = 16000) -> np.ndarray:
    return np.full((n_samples, 1), amplitude, dtype=np.int16)


class MockInputStream:
    """Stands in for sounddevice.InputStream; silence once the script runs out."""

    def __init__(self, frames: list[np.ndarray], on_read=None, **kwargs):
        self._frames = iter(frames)
        self._on_read = on_read
        self.kwargs = kwargs

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass

    def read(self, frames):
        if self._on_read is not None:
            self._on_read()
        try:
            return next(self._frames), False
        except StopIteration:
            return _silent_frame(frames), False


def _install_sounddevice(monkeypatch, *, frames=None, stream_factory=None, has_device=True):
    """Put a fake ``sounddevice`` module in ``sys.modules``."""
    module = types.ModuleType("sounddevice")

    def query_devices(*args, **kwargs):
        if not has_device:
            raise OSError("No input device")
        return {"name": "test-mic", "max_input_channels": 1}

    module.query_devices = query_devices
    module.InputStream = stream_factory or (lambda **kwargs: MockInputStream(frames or [], **kwargs))
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


async def _started_mic() -> MicrophoneCapture:
    mic = MicrophoneCapture()
    await mic.start()
    return mic


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:

    async def test_initial_state(self):
        mic = MicrophoneCapture()
        assert mic.is_available is False
        assert mic.is_listening is False

    async def test_start_detects_input_device(self, monkeypatch):
        _install_sounddevice(monkeypatch)
        mic = await _started_mic()
        assert mic.is_available is True

    async def test_start_without_device(self, monkeypatch):
        _install_sounddevice(monkeypatch, has_device=False)
        mic = await _started_mic()
        assert mic.is_available is False

    async def test_start_without_portaudio(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "sounddevice", None)
        mic = await _started_mic()
        assert mic.is_available is False

    async def test_stop_clears_state(self, monkeypatch):
        _install_sounddevice(monkeypatch)
        mic = await _started_mic()
        await mic.stop()
        assert mic.is_available is False
        assert mic.is_listening is False


# ---------------------------------------------------------------------------
# capture_utterance()
# ---------------------------------------------------------------------------

class TestCaptureUtterance:

    async def test_unavailable_is_audio_capture_error(self):
        mic = MicrophoneCapture()
        with pytest.raises(RecognitionError) as exc_info:
            await mic.capture_utterance()
        assert exc_info.value.code == "audio-capture"

    async def test_returns_pcm_after_speech(self, monkeypatch):
        frames = [_loud_frame() for _ in range(3)] + [_silent_frame() for _ in range(20)]
        _install_sounddevice(monkeypatch, frames=frames)
        mic = await _started_mic()

        pcm = await mic.capture_utterance(silence_duration=0.5, listen_timeout=5.0)

        assert isinstance(pcm, bytes)
        # 3 loud chunks plus the trailing silence, well short of all 23 chunks.
        assert 3 * _CHUNK * 2 <= len(pcm) < 23 * _CHUNK * 2
        assert mic.is_listening is False

    async def test_silence_is_no_speech(self, monkeypatch):
        _install_sounddevice(monkeypatch, frames=[])
        mic = await _started_mic()

        with pytest.raises(RecognitionError) as exc_info:
            await mic.capture_utterance(listen_timeout=0.5)

        assert exc_info.value.code == "no-speech"
        assert mic.is_listening is False

    async def test_respects_max_duration(self, monkeypatch):
        _install_sounddevice(monkeypatch, frames=[_loud_frame() for _ in range(200)])
        mic = await _started_mic()

        pcm = await mic.capture_utterance(max_duration=0.5, listen_timeout=5.0)

        assert len(pcm) <= 7 * _CHUNK * 2

    async def test_cancel_before_speech_is_aborted(self, monkeypatch):
        mic = MicrophoneCapture()
        _install_sounddevice(
            monkeypatch,
            stream_factory=lambda **kwargs: MockInputStream([], on_read=mic.cancel, **kwargs),
        )
        await mic.start()

        with pytest.raises(RecognitionError) as exc_info:
            await mic.capture_utterance(listen_timeout=5.0)

        assert exc_info.value.code == "aborted"

    async def test_device_failure_is_audio_capture(self, monkeypatch):
        def _raise_on_create(**kwargs):
            raise RuntimeError("Simulated device error")

        _install_sounddevice(monkeypatch, stream_factory=_raise_on_create)
        mic = await _started_mic()

        with pytest.raises(RecognitionError) as exc_info:
            await mic.capture_utterance()

        assert exc_info.value.code == "audio-capture"
        assert mic.is_listening is False

    async def test_stream_opened_with_requested_rate(self, monkeypatch):
        streams = []

        def _factory(**kwargs):
            stream = MockInputStream([_loud_frame(800)], **kwargs)
            streams.append(stream)
            return stream

        _install_sounddevice(monkeypatch, stream_factory=_factory)
        mic = await _started_mic()

        await mic.capture_utterance(sample_rate=8000, silence_duration=0.2, listen_timeout=1.0)

        assert streams[0].kwargs["samplerate"] == 8000
        assert streams[0].kwargs["blocksize"] == 800
        assert streams[0].kwargs["dtype"] == "int16"


# ---------------------------------------------------------------------------
# compute_rms()
# ---------------------------------------------------------------------------

class TestComputeRms:

    def test_silence(self):
        assert MicrophoneCapture.compute_rms(_silent_frame()) == 0.0

    def test_full_scale(self):
        rms = MicrophoneCapture.compute_rms(np.full((1600, 1), 32767, dtype=np.int16))
        assert 0.99 < rms <= 1.0
