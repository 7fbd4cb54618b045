"""Dispatch loop: transcripts in, command execution or AI replies out.

Final transcripts from the recognition session and typed text from the HTTP
API go through the same ``handle()`` path.  Turns are serialized with a lock
so they are processed one at a time in arrival order, which also bounds the
number of in-flight AI calls to one.

Every turn records the loop's generation when it is submitted.  ``abandon()``
bumps the generation; an AI reply that resolves under a newer generation is
dropped, and queued turns from an older generation skip the AI call.
"""

import asyncio
import inspect
import logging

from sathi.ai.prompt import PromptBuilder
from sathi.ai.responder import AIResponder
from sathi.commands.registry import CommandRegistry
from sathi.config import CONFIDENCE_THRESHOLD
from sathi.dispatch.chat_log import ChatLog
from sathi.dispatch.types import DispatchOutcome, DispatchState, OutcomeKind, TurnOrigin
from sathi.errors import AIFallbackError, UnsupportedCapabilityError
from sathi.events.types import MessageKind, MessageRole
from sathi.messages import t
from sathi.settings.store import SettingsStore
from sathi.stt.session import RecognitionSession
from sathi.stt.types import (
    EndedEvent,
    EndReason,
    ErrorEvent,
    RecognitionErrorCode,
    ResultEvent,
    TranscriptEvent,
)
from sathi.tts.speech_output import SpeechOutput

logger = logging.getLogger(__name__)


class DispatchLoop:
    """Routes each turn to a matching command or the AI fallback."""

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        session: RecognitionSession | None = None,
        speech: SpeechOutput | None = None,
        responder: AIResponder | None = None,
        chat_log: ChatLog | None = None,
        settings: SettingsStore | None = None,
        prompt_builder: PromptBuilder | None = None,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        self._registry = registry
        self._session = session
        self._speech = speech
        self._responder = responder
        self._chat_log = chat_log if chat_log is not None else ChatLog()
        self._settings = settings
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._confidence_threshold = confidence_threshold

        self._lock = asyncio.Lock()
        self._state: DispatchState = DispatchState.IDLE
        self._generation: int = 0
        self._running: bool = False
        self._consume_task: asyncio.Task | None = None
        self._turn_tasks: set[asyncio.Task] = set()
        self._last_speech_turn: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin consuming recognition events, if there is a session."""
        self._running = True
        if self._session is not None:
            self._consume_task = asyncio.create_task(self._consume_loop())
        logger.info("Dispatch loop started")

    async def stop(self) -> None:
        self._running = False

        if self._consume_task is not None:
            self._consume_task.cancel()
            try:
                await self._consume_task
            except asyncio.CancelledError:
                pass
            self._consume_task = None

        for task in list(self._turn_tasks):
            task.cancel()
        if self._turn_tasks:
            await asyncio.gather(*self._turn_tasks, return_exceptions=True)
        self._turn_tasks.clear()
        self._last_speech_turn = None

        logger.info("Dispatch loop stopped")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def chat_log(self) -> ChatLog:
        return self._chat_log

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    @property
    def responder(self) -> AIResponder | None:
        return self._responder

    @property
    def language(self) -> str:
        if self._settings is None:
            return "en"
        return self._settings.settings.language

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def abandon(self) -> int:
        """Invalidate pending AI replies.  Returns the new generation."""
        self._generation += 1
        self._chat_log.set_interim("")
        logger.debug("Dispatch generation bumped to %d", self._generation)
        return self._generation

    async def handle(
        self,
        text: str,
        *,
        confidence: float = 1.0,
        origin: TurnOrigin = TurnOrigin.TYPED,
    ) -> DispatchOutcome:
        """Process one final transcript or typed message."""
        generation = self._generation
        text = (text or "").strip()
        if not text:
            return DispatchOutcome(kind=OutcomeKind.REJECTED, transcript="", origin=origin)

        async with self._lock:
            try:
                return await self._process(text, confidence, origin, generation)
            finally:
                self._state = DispatchState.IDLE

    async def announce(self, text: str, kind: MessageKind = MessageKind.NOTICE) -> None:
        """Append a system message and speak it."""
        await self._chat_log.append(MessageRole.SYSTEM, text, kind)
        self._say(text)

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def _process(
        self,
        text: str,
        confidence: float,
        origin: TurnOrigin,
        generation: int,
    ) -> DispatchOutcome:
        language = self.language
        await self._chat_log.append(MessageRole.USER, text, MessageKind.TRANSCRIPT)

        if origin == TurnOrigin.SPEECH and confidence < self._confidence_threshold:
            logger.info(
                "Rejected transcript %r (confidence %.2f < %.2f)",
                text, confidence, self._confidence_threshold,
            )
            reply = t("low_confidence", language)
            await self.announce(reply, MessageKind.NOTICE)
            return DispatchOutcome(
                kind=OutcomeKind.REJECTED, transcript=text, reply=reply, origin=origin
            )

        self._state = DispatchState.MATCHING
        match = self._registry.match(text)
        if match:
            return await self._run_command(text, match, origin, language)
        return await self._fallback(text, origin, generation, language)

    async def _run_command(self, text, match, origin: TurnOrigin, language: str) -> DispatchOutcome:
        command = match.command
        self._state = DispatchState.HANDLER_EXECUTING
        logger.info("Matched %r -> %r groups=%s", text, command.pattern, match.groups)
        try:
            result = command.handler(*match.groups)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.warning("Command handler for %r failed", command.pattern, exc_info=True)
            reply = t("command_failed", language)
            await self.announce(reply, MessageKind.ERROR)
            return DispatchOutcome(
                kind=OutcomeKind.HANDLER_FAILED,
                transcript=text,
                reply=reply,
                pattern=command.pattern,
                groups=list(match.groups),
                origin=origin,
            )

        if isinstance(result, str) and result.strip():
            reply = result.strip()
        else:
            reply = t("done", language, description=command.description)
        await self.announce(reply, MessageKind.CONFIRMATION)
        return DispatchOutcome(
            kind=OutcomeKind.MATCHED,
            transcript=text,
            reply=reply,
            pattern=command.pattern,
            groups=list(match.groups),
            origin=origin,
        )

    async def _fallback(
        self, text: str, origin: TurnOrigin, generation: int, language: str
    ) -> DispatchOutcome:
        if generation != self._generation:
            logger.info("Skipping AI fallback for abandoned turn %r", text)
            return DispatchOutcome(kind=OutcomeKind.STALE, transcript=text, origin=origin)

        if self._responder is None:
            reply = t("ai_not_configured", language)
            await self.announce(reply, MessageKind.APOLOGY)
            return DispatchOutcome(
                kind=OutcomeKind.APOLOGY, transcript=text, reply=reply, origin=origin
            )

        self._state = DispatchState.AI_PENDING
        prompt = self._prompt_builder.build(
            text, language=language, profile=self._profile()
        )
        kind = OutcomeKind.AI_REPLY
        try:
            reply = (await self._responder.respond(prompt)).strip()
            self._state = DispatchState.AI_RESPONDED
        except AIFallbackError as exc:
            logger.warning("AI fallback failed: %s", exc, exc_info=True)
            self._state = DispatchState.AI_FAILED
            kind = OutcomeKind.APOLOGY
            reply = t("ai_apology", language)
        except Exception:
            logger.warning("AI responder raised unexpectedly", exc_info=True)
            self._state = DispatchState.AI_FAILED
            kind = OutcomeKind.APOLOGY
            reply = t("ai_apology", language)

        if generation != self._generation:
            logger.info("Discarding stale AI reply for %r", text)
            return DispatchOutcome(kind=OutcomeKind.STALE, transcript=text, origin=origin)

        await self.announce(
            reply, MessageKind.AI_REPLY if kind == OutcomeKind.AI_REPLY else MessageKind.APOLOGY
        )
        return DispatchOutcome(kind=kind, transcript=text, reply=reply, origin=origin)

    def _profile(self) -> str:
        if self._settings is None:
            return "default"
        return self._settings.settings.accessibility_profile.value

    def _say(self, text: str) -> None:
        if self._speech is None:
            return
        lang = self._settings.settings.locale if self._settings is not None else None
        if lang:
            self._speech.speak(text, lang=lang)
        else:
            self._speech.speak(text)

    # ------------------------------------------------------------------
    # Recognition events
    # ------------------------------------------------------------------

    async def _consume_loop(self) -> None:
        """Read the session's event channel until stopped."""
        while self._running:
            try:
                event = await asyncio.wait_for(self._session.next_event(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            try:
                await self._handle_event(event)
            except Exception:
                logger.warning("Dispatch loop error processing event", exc_info=True)

    async def _handle_event(self, event) -> None:
        if isinstance(event, ResultEvent):
            transcript: TranscriptEvent = event.transcript
            if not transcript.is_final:
                self._chat_log.set_interim(transcript.raw_text)
                return
            self._chat_log.set_interim("")
            self._last_speech_turn = self._track(
                self.handle(
                    transcript.raw_text,
                    confidence=transcript.confidence,
                    origin=TurnOrigin.SPEECH,
                )
            )
        elif isinstance(event, ErrorEvent):
            await self._report_recognition_error(event.code)
        elif isinstance(event, EndedEvent):
            if event.reason == EndReason.FINAL and self._session.config.continuous:
                self._track(self._restart_after(self._last_speech_turn, self._generation))
        else:
            logger.debug("Recognition cycle %d started", event.cycle)

    async def _report_recognition_error(self, code: RecognitionErrorCode) -> None:
        self._chat_log.set_interim("")
        reply = t(code.value.replace("-", "_"), self.language)
        await self.announce(reply, MessageKind.ERROR)

    async def _restart_after(self, turn: asyncio.Task | None, generation: int) -> None:
        """Start the next cycle once *turn* is done, unless the user stopped."""
        if turn is not None:
            await asyncio.wait({turn})
        if not self._running or generation != self._generation:
            return
        if self._session.is_listening or not self._session.config.continuous:
            return
        try:
            await self._session.start()
        except UnsupportedCapabilityError:
            logger.warning("Cannot restart listening", exc_info=True)

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._turn_tasks.add(task)
        task.add_done_callback(self._turn_tasks.discard)
        return task
