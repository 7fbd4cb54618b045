"""Tests for sathi.ai.ollama_responder — local Ollama fallback."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from sathi.ai.ollama_responder import OllamaResponder
from sathi.errors import AIFallbackError


def _response(status_code: int = 200, payload=None, method: str = "POST") -> httpx.Response:
    content = json.dumps(payload).encode() if payload is not None else b""
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request(method, "/api/generate"),
    )


async def _started(instance) -> OllamaResponder:
    with patch("sathi.ai.ollama_responder.httpx.AsyncClient") as MockClient:
        MockClient.return_value = instance
        responder = OllamaResponder(model="llama-test")
        await responder.start()
    return responder


def _client(post_response=None, tags_status: int = 200) -> AsyncMock:
    instance = AsyncMock()
    instance.get = AsyncMock(return_value=_response(tags_status, method="GET"))
    instance.post = AsyncMock(return_value=post_response or _response(200, {"response": " Hi. "}))
    return instance


class TestOllamaResponder:

    async def test_available_when_tags_answer(self):
        responder = await _started(_client())
        assert responder.is_available is True
        assert responder.responder_name == "ollama"

    async def test_unreachable(self):
        instance = _client()
        instance.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        responder = await _started(instance)
        assert responder.is_available is False

    async def test_respond_sends_non_streaming_request(self):
        instance = _client()
        responder = await _started(instance)

        reply = await responder.respond("prompt text")

        assert reply == "Hi."
        body = instance.post.call_args.kwargs["json"]
        assert body["model"] == "llama-test"
        assert body["prompt"] == "prompt text"
        assert body["stream"] is False

    async def test_empty_reply_raises(self):
        responder = await _started(_client(_response(200, {"response": ""})))
        with pytest.raises(AIFallbackError):
            await responder.respond("prompt")

    async def test_status_error(self):
        responder = await _started(_client(_response(500, {"error": "boom"})))
        with pytest.raises(AIFallbackError) as exc_info:
            await responder.respond("prompt")
        assert exc_info.value.status_code == 500

    async def test_unavailable_raises(self):
        responder = await _started(_client(tags_status=503))
        responder._last_health_check = float("inf")
        with pytest.raises(AIFallbackError):
            await responder.respond("prompt")
