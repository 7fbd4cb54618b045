"""Composition root: one instance of every component, wired together.

The Assistant owns the command registry, the recognition session, speech
output, the AI responder, settings and the dispatch loop.  The HTTP server
creates exactly one and drives it through ``start()``/``stop()``.
"""

import logging
from typing import Any

from sathi import __version__
from sathi.ai.prompt import PromptBuilder
from sathi.ai.responder import AIResponder
from sathi.ai.responder_factory import create_ai_responder
from sathi.commands import (
    CommandRegistry,
    install_accessibility_commands,
    install_emergency_commands,
    install_help_commands,
    install_navigation_commands,
)
from sathi.config import CONFIDENCE_THRESHOLD, TTS_DEFAULT_RATE, TTS_DEFAULT_VOLUME
from sathi.dispatch.chat_log import ChatLog
from sathi.dispatch.loop import DispatchLoop
from sathi.dispatch.types import DispatchOutcome
from sathi.errors import UnsupportedCapabilityError
from sathi.events.event_bus import EventBus
from sathi.events.types import ActionEvent, ActionType, ChatMessage, MessageKind, MessageRole
from sathi.messages import t
from sathi.settings.store import AccessibilityProfile, Settings, SettingsStore
from sathi.stt.engine import RecognitionEngine
from sathi.stt.session import RecognitionSession
from sathi.stt.types import RecognitionConfig, SessionState
from sathi.tts.speech_output import SpeechOutput
from sathi.tts.synthesizer import Synthesizer

logger = logging.getLogger(__name__)

# Blind users get slower, louder speech.
_BLIND_RATE = 0.8
_BLIND_VOLUME = 0.9


class Assistant:
    """Owns and wires every Sewa Sathi component."""

    def __init__(
        self,
        *,
        engine: RecognitionEngine | None = None,
        synthesizer: Synthesizer | None = None,
        responder: AIResponder | None = None,
        settings: SettingsStore | None = None,
        registry: CommandRegistry | None = None,
        tts_enabled: bool = True,
        always_listening: bool = False,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        if engine is None:
            from sathi.stt.whisper_engine import WhisperRecognitionEngine

            engine = WhisperRecognitionEngine()
        if synthesizer is None:
            from sathi.tts.elevenlabs_synthesizer import ElevenLabsSynthesizer

            synthesizer = ElevenLabsSynthesizer()
        if responder is None:
            responder = create_ai_responder()

        self._engine = engine
        self._synthesizer = synthesizer
        self._responder = responder
        self._tts_override = tts_enabled
        self._always_listen_override = always_listening
        self._notified: set[str] = set()

        self.settings_store = settings if settings is not None else SettingsStore()
        self.registry = registry if registry is not None else CommandRegistry()
        self.message_bus: EventBus[ChatMessage] = EventBus()
        self.action_bus: EventBus[ActionEvent] = EventBus()
        self.chat_log = ChatLog(self.message_bus)

        current = self.settings_store.settings
        self.session = RecognitionSession(
            engine,
            RecognitionConfig(
                language=current.locale,
                continuous=always_listening or (current.always_listening and current.voice_enabled),
            ),
        )
        self.speech = SpeechOutput(synthesizer, enabled=current.tts_enabled and tts_enabled)
        self.session.set_state_callback(self._on_listening_state)
        self.speech.set_callbacks(on_state_change=self._on_speaking_state)
        self.loop = DispatchLoop(
            self.registry,
            session=self.session,
            speech=self.speech,
            responder=responder,
            chat_log=self.chat_log,
            settings=self.settings_store,
            prompt_builder=PromptBuilder(),
            confidence_threshold=confidence_threshold,
        )
        self.settings_store.add_listener(self._on_settings_changed)
        self._install_commands()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load settings, start every component and the dispatch loop."""
        settings = self.settings_store.load()
        await self._engine.start()
        await self._synthesizer.start()
        if self._responder is not None:
            await self._responder.start()

        self._apply_settings(settings)
        await self.loop.start()

        if self.speech.enabled and not self.speech.is_available:
            await self._notice_once("speech_unsupported")
        if self.session.config.continuous:
            await self.start_listening()

        logger.info(
            "Assistant started (stt=%s, tts=%s, ai=%s)",
            self.session.is_supported,
            self.speech.is_available,
            self._responder.responder_name if self._responder is not None else "none",
        )

    async def stop(self) -> None:
        await self.loop.stop()
        await self.session.stop()
        self.speech.cancel_all()
        if self._responder is not None:
            await self._responder.stop()
        await self._synthesizer.stop()
        await self._engine.stop()
        logger.info("Assistant stopped")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def handle(self, text: str) -> DispatchOutcome:
        """Dispatch typed text."""
        return await self.loop.handle(text)

    async def start_listening(self) -> bool:
        """Start a recognition cycle.  Returns ``False`` if unsupported."""
        try:
            await self.session.start()
        except UnsupportedCapabilityError:
            logger.warning("Voice input unavailable", exc_info=True)
            await self._notice_once("voice_unsupported")
            return False
        return True

    async def stop_listening(self) -> None:
        """Stop the current cycle and drop replies still pending from it."""
        self.loop.abandon()
        await self.session.stop()

    def stop_speaking(self) -> None:
        self.speech.cancel_all()

    def clear_chat(self) -> None:
        self.loop.abandon()
        self.chat_log.clear()

    async def update_settings(self, **changes: Any) -> Settings:
        """Persist *changes*, apply them and tell the front end.

        Raises:
            pydantic.ValidationError: if a value is invalid.
            ValueError: if a key is unknown.
        """
        before = self.settings_store.settings
        settings = self.settings_store.update(**changes)
        await self.action_bus.emit(
            ActionEvent(kind=ActionType.APPLY_SETTINGS, data=settings.model_dump(mode="json"))
        )
        always_on = settings.always_listening and not before.always_listening
        if before.voice_enabled and not settings.voice_enabled:
            await self.stop_listening()
        elif settings.voice_enabled and not before.voice_enabled:
            await self.start_listening()
        elif always_on and self.session.config.continuous:
            await self.start_listening()
        return settings

    def health(self) -> dict[str, Any]:
        responder = self._responder
        return {
            "status": "ok",
            "version": __version__,
            "commands": len(self.registry),
            "dispatch_state": self.loop.state.value,
            "generation": self.loop.generation,
            "listening_state": self.session.state.value,
            "stt_available": self.session.is_supported,
            "tts_state": self.speech.state.value,
            "tts_available": self.speech.is_available,
            "ai_provider": responder.responder_name if responder is not None else None,
            "ai_available": responder.is_available if responder is not None else False,
            "message_subscribers": self.message_bus.subscriber_count,
            "action_subscribers": self.action_bus.subscriber_count,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _install_commands(self) -> None:
        # Emergency first: "please call police now" must never reach anything else.
        install_emergency_commands(self.registry, self.action_bus)
        install_accessibility_commands(
            self.registry,
            self.settings_store,
            self.update_settings,
            stop_listening=self.stop_listening,
            stop_speaking=self.stop_speaking,
        )
        install_navigation_commands(self.registry, self.action_bus)
        install_help_commands(self.registry)
        logger.info("Installed %d built-in commands", len(self.registry))

    def _on_settings_changed(self, settings: Settings, changed: set[str]) -> None:
        logger.info("Settings changed: %s", ", ".join(sorted(changed)))
        self._apply_settings(settings)

    def _apply_settings(self, settings: Settings) -> None:
        self.session.set_language(settings.locale)
        self.session.set_continuous(
            self._always_listen_override or (settings.always_listening and settings.voice_enabled)
        )
        self.speech.set_enabled(settings.tts_enabled and self._tts_override)
        if settings.accessibility_profile == AccessibilityProfile.BLIND:
            self.speech.set_defaults(rate=_BLIND_RATE, volume=_BLIND_VOLUME, lang=settings.locale)
        else:
            self.speech.set_defaults(
                rate=TTS_DEFAULT_RATE, volume=TTS_DEFAULT_VOLUME, lang=settings.locale
            )

    def _on_listening_state(self, state: SessionState) -> None:
        self.action_bus.emit_nowait(
            ActionEvent(
                kind=ActionType.LISTENING, data={"listening": state == SessionState.LISTENING}
            )
        )

    def _on_speaking_state(self, speaking: bool) -> None:
        self.action_bus.emit_nowait(ActionEvent(kind=ActionType.SPEAKING, data={"speaking": speaking}))

    async def _notice_once(self, key: str) -> None:
        if key in self._notified:
            return
        self._notified.add(key)
        await self.chat_log.append(
            MessageRole.SYSTEM,
            t(key, self.settings_store.settings.language),
            MessageKind.NOTICE,
        )
