"""Tests for sathi.stt.whisper_engine — microphone capture plus Whisper transcription."""

import io
import json
import wave
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from sathi.errors import RecognitionError
from sathi.stt.types import RecognitionConfig
from sathi.stt.whisper_engine import WhisperRecognitionEngine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeMicrophone:
    """Stands in for MicrophoneCapture; returns fixed PCM or raises."""

    def __init__(self, pcm: bytes = b"\x00\x00" * 160, error: Exception | None = None):
        self.pcm = pcm
        self.error = error
        self.is_available = False
        self.cancelled = 0

    async def start(self):
        self.is_available = True

    async def stop(self):
        self.is_available = False

    def cancel(self):
        self.cancelled += 1

    async def capture_utterance(self):
        if self.error is not None:
            raise self.error
        return self.pcm


def _health_response(status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, request=httpx.Request("GET", "/v1/models"))


def _transcription_response(payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
        request=httpx.Request("POST", "/v1/audio/transcriptions"),
    )


async def _started_engine(monkeypatch, instance, microphone=None) -> WhisperRecognitionEngine:
    monkeypatch.setattr("sathi.stt.whisper_engine.STT_API_KEY", "test-key")
    with patch("sathi.stt.whisper_engine.httpx.AsyncClient") as MockClient:
        MockClient.return_value = instance
        engine = WhisperRecognitionEngine(microphone or FakeMicrophone())
        await engine.start()
    return engine


async def _collect(engine, config=None) -> list:
    return [result async for result in engine.listen(config or RecognitionConfig())]


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class TestStartup:

    async def test_no_api_key_disables(self, monkeypatch):
        monkeypatch.setattr("sathi.stt.whisper_engine.STT_API_KEY", "")
        engine = WhisperRecognitionEngine(FakeMicrophone())
        await engine.start()

        assert engine.is_available is False
        assert engine._client is None

    async def test_health_check_success(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))

        engine = await _started_engine(monkeypatch, instance)

        assert engine.is_available is True
        instance.get.assert_awaited_once_with("/v1/models")

    async def test_unavailable_without_microphone(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        microphone = FakeMicrophone()

        engine = await _started_engine(monkeypatch, instance, microphone)
        await microphone.stop()

        assert engine.is_available is False

    async def test_health_check_unauthorized(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(401))
        engine = await _started_engine(monkeypatch, instance)
        assert engine.is_available is False

    async def test_health_check_connection_error(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        engine = await _started_engine(monkeypatch, instance)
        assert engine.is_available is False

    async def test_stop_closes_client(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        engine = await _started_engine(monkeypatch, instance)

        await engine.stop()

        instance.aclose.assert_awaited_once()
        assert engine._client is None

    async def test_abort_cancels_capture(self):
        microphone = FakeMicrophone()
        engine = WhisperRecognitionEngine(microphone)
        engine.abort()
        assert microphone.cancelled == 1


# ---------------------------------------------------------------------------
# listen()
# ---------------------------------------------------------------------------


class TestListen:

    async def test_yields_one_final_result(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        instance.post = AsyncMock(
            return_value=_transcription_response(
                {"text": " Navigate to Contact ", "segments": [{"avg_logprob": 0.0}]}
            )
        )
        engine = await _started_engine(monkeypatch, instance)

        results = await _collect(engine, RecognitionConfig(language="ne-NP"))

        assert len(results) == 1
        assert results[0].transcript == "Navigate to Contact"
        assert results[0].is_final is True
        assert results[0].confidence == pytest.approx(1.0)
        assert instance.post.call_args.kwargs["data"]["language"] == "ne"

    async def test_empty_transcript_is_no_speech(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        instance.post = AsyncMock(return_value=_transcription_response({"text": "  "}))
        engine = await _started_engine(monkeypatch, instance)

        with pytest.raises(RecognitionError) as exc_info:
            await _collect(engine)

        assert exc_info.value.code == "no-speech"

    async def test_unauthorized_is_not_allowed(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        instance.post = AsyncMock(return_value=_transcription_response({}, status_code=401))
        engine = await _started_engine(monkeypatch, instance)

        with pytest.raises(RecognitionError) as exc_info:
            await _collect(engine)

        assert exc_info.value.code == "not-allowed"

    async def test_server_error_is_network(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        instance.post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        engine = await _started_engine(monkeypatch, instance)

        with pytest.raises(RecognitionError) as exc_info:
            await _collect(engine)

        assert exc_info.value.code == "network"

    async def test_capture_error_propagates(self, monkeypatch):
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_health_response(200))
        microphone = FakeMicrophone(error=RecognitionError("audio-capture"))
        engine = await _started_engine(monkeypatch, instance, microphone)

        with pytest.raises(RecognitionError) as exc_info:
            await _collect(engine)

        assert exc_info.value.code == "audio-capture"
        instance.post.assert_not_awaited()

    async def test_unavailable_api_is_network(self):
        engine = WhisperRecognitionEngine(FakeMicrophone())
        engine._last_health_check = float("inf")

        with pytest.raises(RecognitionError) as exc_info:
            await _collect(engine)

        assert exc_info.value.code == "network"


# ---------------------------------------------------------------------------
# Helpers on the engine
# ---------------------------------------------------------------------------


class TestHelpers:

    def test_confidence_without_segments(self):
        assert WhisperRecognitionEngine.confidence_from_segments([]) == 1.0

    def test_confidence_from_logprobs(self):
        segments = [{"avg_logprob": -0.1}, {"avg_logprob": -0.3}, {"text": "no logprob"}]
        confidence = WhisperRecognitionEngine.confidence_from_segments(segments)
        assert 0.7 < confidence < 0.9

    def test_wrap_wav_header(self):
        pcm = b"\x01\x00" * 320
        buf = WhisperRecognitionEngine._wrap_wav(pcm, sample_rate=16000)

        with wave.open(io.BytesIO(buf.read()), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 16000
            assert wf.readframes(wf.getnframes()) == pcm
