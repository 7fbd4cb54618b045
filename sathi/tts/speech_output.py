"""Serialized speech output with cancel-and-replace semantics.

At most one utterance is in flight per SpeechOutput: every ``speak()``
cancels whatever is playing or scheduled before scheduling the new text.
``speak()`` never blocks; completion and failure are reported through the
``on_start``/``on_end``/``on_error`` callbacks.
"""

import asyncio
import logging
from typing import Any, Callable, Sequence

from sathi.config import TTS_PREFERRED_VOICE_KEYWORDS
from sathi.tts.synthesizer import Synthesizer
from sathi.tts.types import SpeechOptions, SpeechState, Utterance, Voice

logger = logging.getLogger(__name__)

UtteranceCallback = Callable[[Utterance], None]
ErrorCallback = Callable[[Utterance, BaseException], None]
SpeakingCallback = Callable[[bool], None]


def select_voice(
    voices: Sequence[Voice],
    lang: str,
    preferred_keywords: Sequence[str] = TTS_PREFERRED_VOICE_KEYWORDS,
) -> Voice | None:
    """Pick the best voice for *lang*.

    Order of preference: exact language with a preferred engine-quality name,
    then the first voice sharing the base language tag, then ``None`` (the
    synthesizer default).
    """
    wanted = lang.lower()
    base = wanted.split("-")[0]

    for voice in voices:
        if voice.lang.lower() == wanted and any(
            keyword.lower() in voice.name.lower() for keyword in preferred_keywords
        ):
            return voice

    for voice in voices:
        if voice.lang.lower().split("-")[0] == base:
            return voice

    return None


class SpeechOutput:
    """Vocalizes responses on a synthesizer, one utterance at a time."""

    def __init__(
        self,
        synthesizer: Synthesizer | None,
        *,
        defaults: SpeechOptions | None = None,
        enabled: bool = True,
        on_start: UtteranceCallback | None = None,
        on_end: UtteranceCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_state_change: SpeakingCallback | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._defaults = defaults or SpeechOptions()
        self._enabled = enabled
        self._on_start = on_start
        self._on_end = on_end
        self._on_error = on_error
        self._on_state_change = on_state_change
        self._task: asyncio.Task | None = None
        self._current: Utterance | None = None
        self._speaking: bool = False
        self._unavailable_logged: bool = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        return self._synthesizer is not None and self._synthesizer.is_available

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def current(self) -> Utterance | None:
        return self._current

    @property
    def defaults(self) -> SpeechOptions:
        return self._defaults

    @property
    def state(self) -> SpeechState:
        if not self.is_available:
            return SpeechState.DISABLED
        if not self._enabled:
            return SpeechState.MUTED
        if self._speaking:
            return SpeechState.SPEAKING
        return SpeechState.ACTIVE

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_enabled(self, enabled: bool) -> None:
        """Mute or unmute.  Muting cancels current speech."""
        self._enabled = enabled
        if not enabled:
            self.cancel_all()

    def set_defaults(self, **options: Any) -> None:
        """Merge *options* into the defaults used by every later ``speak()``."""
        self._defaults = SpeechOptions(**{**self._defaults.model_dump(), **options})

    def set_callbacks(
        self,
        *,
        on_start: UtteranceCallback | None = None,
        on_end: UtteranceCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_state_change: SpeakingCallback | None = None,
    ) -> None:
        self._on_start = on_start or self._on_start
        self._on_end = on_end or self._on_end
        self._on_error = on_error or self._on_error
        self._on_state_change = on_state_change or self._on_state_change

    # ------------------------------------------------------------------
    # Speaking
    # ------------------------------------------------------------------

    def speak(self, text: str, **options: Any) -> Utterance | None:
        """Cancel current speech and schedule *text*.

        Must be called from a running event loop.  Returns the scheduled
        utterance, or ``None`` when muted, empty or no synthesizer is usable.
        """
        if not self._enabled or not text or not text.strip():
            return None
        if not self.is_available:
            if not self._unavailable_logged:
                logger.warning("Speech synthesis unavailable, not speaking")
                self._unavailable_logged = True
            return None

        self.cancel_all()
        utterance = self._build_utterance(text.strip(), options)
        self._current = utterance
        self._task = asyncio.get_running_loop().create_task(self._play(utterance))
        return utterance

    def cancel_all(self) -> None:
        """Stop current and scheduled speech immediately."""
        task = self._task
        self._task = None
        self._current = None
        if task is not None and not task.done():
            task.cancel()
            if self._synthesizer is not None:
                self._synthesizer.cancel()
        self._set_speaking(False)

    async def wait(self) -> None:
        """Wait until the current utterance finishes or is cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _build_utterance(self, text: str, options: dict[str, Any]) -> Utterance:
        merged = SpeechOptions(**{**self._defaults.model_dump(), **options})
        voice = merged.voice
        if voice is None:
            voice = select_voice(self._synthesizer.voices(), merged.lang)
        return Utterance(
            text=text,
            rate=merged.rate,
            pitch=merged.pitch,
            volume=merged.volume,
            lang=merged.lang,
            voice=voice,
        )

    async def _play(self, utterance: Utterance) -> None:
        self._set_speaking(True)
        self._notify(self._on_start, utterance)
        try:
            await self._synthesizer.speak(utterance)
        except asyncio.CancelledError:
            logger.debug("Utterance %s cancelled", utterance.utterance_id)
            raise
        except Exception as exc:
            logger.warning("Speech synthesis failed", exc_info=True)
            if self._on_error is not None:
                try:
                    self._on_error(utterance, exc)
                except Exception:
                    logger.warning("on_error callback failed", exc_info=True)
        else:
            self._notify(self._on_end, utterance)
        finally:
            if self._current is utterance:
                self._current = None
                self._task = None
                self._set_speaking(False)

    def _notify(self, callback: UtteranceCallback | None, utterance: Utterance) -> None:
        if callback is None:
            return
        try:
            callback(utterance)
        except Exception:
            logger.warning("Speech callback failed", exc_info=True)

    def _set_speaking(self, speaking: bool) -> None:
        if speaking == self._speaking:
            return
        self._speaking = speaking
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(speaking)
        except Exception:
            logger.warning("Speaking indicator callback failed", exc_info=True)
