"""Shared fixtures for Sewa Sathi tests.

The fake engine, synthesizer and responder implement the real ABCs so the
session, speech output and dispatch loop run unmodified against them,
without microphones, speakers or network access.
"""

import asyncio

import httpx
import pytest

from sathi.ai.responder import AIResponder
from sathi.assistant import Assistant
from sathi.commands.registry import CommandRegistry
from sathi.dispatch.chat_log import ChatLog
from sathi.events.event_bus import EventBus
from sathi.settings.store import SettingsStore
from sathi.stt.engine import RecognitionEngine
from sathi.stt.session import RecognitionSession
from sathi.tts.speech_output import SpeechOutput
from sathi.tts.synthesizer import Synthesizer


class FakeEngine(RecognitionEngine):
    """Recognition engine that replays one scripted list per cycle.

    A script item is a ``RecognitionResult`` (yielded) or an exception
    (raised).  With ``hold`` set, the cycle blocks after its script until
    cancelled, like a microphone waiting for speech.
    """

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.cycles: list[list] = []
        self.configs: list = []
        self.hold = False
        self.started = False
        self.aborted = 0

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def engine_name(self) -> str:
        return "fake"

    def abort(self) -> None:
        self.aborted += 1

    async def listen(self, config):
        self.configs.append(config)
        script = self.cycles.pop(0) if self.cycles else []
        for item in script:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            yield item
        if self.hold:
            await asyncio.Event().wait()


class FakeSynthesizer(Synthesizer):
    """Synthesizer that records utterances instead of playing them."""

    def __init__(self, available: bool = True, voices=None) -> None:
        self.available = available
        self._voices = list(voices or [])
        self.spoken: list = []
        self.completed: list = []
        self.cancelled = 0
        self.block = False
        self.error: Exception | None = None
        self.started = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def synthesizer_name(self) -> str:
        return "fake"

    def voices(self):
        return list(self._voices)

    async def speak(self, utterance) -> None:
        self.spoken.append(utterance)
        if self.error is not None:
            raise self.error
        if self.block:
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        self.completed.append(utterance)

    def cancel(self) -> None:
        self.cancelled += 1


class FakeResponder(AIResponder):
    """AI responder returning a canned reply, an error, or waiting on a gate."""

    def __init__(self, reply: str = "Here is some help.", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []
        self.gate: asyncio.Event | None = None
        self.available = True
        self.started = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def responder_name(self) -> str:
        return "fake"

    async def respond(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate()* is true or *timeout* passes."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def responder() -> FakeResponder:
    return FakeResponder()


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture
def settings_store(tmp_path) -> SettingsStore:
    """A settings store writing to a temporary file."""
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def event_bus() -> EventBus:
    """Return a fresh EventBus instance with a small queue for testing."""
    return EventBus(maxsize=16)


@pytest.fixture
def chat_log() -> ChatLog:
    return ChatLog(EventBus(maxsize=64))


@pytest.fixture
def session(engine: FakeEngine) -> RecognitionSession:
    return RecognitionSession(engine)


@pytest.fixture
def speech(synthesizer: FakeSynthesizer) -> SpeechOutput:
    return SpeechOutput(synthesizer)


@pytest.fixture
def assistant(engine, synthesizer, responder, settings_store) -> Assistant:
    """An Assistant wired to fakes; not started."""
    return Assistant(
        engine=engine,
        synthesizer=synthesizer,
        responder=responder,
        settings=settings_store,
    )


@pytest.fixture
async def app(assistant: Assistant):
    """A FastAPI app around a started assistant.

    ASGITransport does not run lifespan events, so the assistant is started
    and stopped here instead.
    """
    from sathi.server.app import create_app

    await assistant.start()
    try:
        yield create_app(assistant)
    finally:
        await assistant.stop()


@pytest.fixture
async def async_client(app):
    """Return an httpx AsyncClient configured with the test FastAPI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest.fixture
def eventually():
    """Return ``wait_for`` for asserting on effects of background tasks."""
    return wait_for
