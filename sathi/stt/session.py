"""Recognition session: one engine cycle at a time, one event channel out.

Instead of separate start/result/error/end callbacks, every cycle is reported
on a single queue as ``started``, zero or more interim ``result`` events,
exactly one final ``result`` or ``error``, and ``ended``.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable

from sathi.errors import RecognitionError, UnsupportedCapabilityError
from sathi.stt.engine import RecognitionEngine
from sathi.stt.types import (
    EndedEvent,
    EndReason,
    ErrorEvent,
    RecognitionConfig,
    RecognitionErrorCode,
    RecognitionEvent,
    ResultEvent,
    SessionState,
    StartedEvent,
    TranscriptEvent,
)

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState], None]


class RecognitionSession:
    """Wraps a recognition engine and normalizes its output into events."""

    def __init__(
        self,
        engine: RecognitionEngine | None,
        config: RecognitionConfig | None = None,
        *,
        on_state_change: StateCallback | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or RecognitionConfig()
        self._on_state_change = on_state_change
        self._events: asyncio.Queue[RecognitionEvent] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._state: SessionState = SessionState.IDLE
        self._cycle: int = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state == SessionState.LISTENING

    @property
    def is_supported(self) -> bool:
        """Whether an engine exists and reports itself available."""
        return self._engine is not None and self._engine.is_available

    @property
    def config(self) -> RecognitionConfig:
        return self._config

    @property
    def cycle(self) -> int:
        """Number of the most recently started recognition cycle."""
        return self._cycle

    def set_language(self, language: str) -> None:
        """Use *language* (BCP-47) from the next cycle on."""
        self._config = self._config.model_copy(update={"language": language})

    def set_continuous(self, continuous: bool) -> None:
        self._config = self._config.model_copy(update={"continuous": continuous})

    def set_state_callback(self, callback: StateCallback | None) -> None:
        self._on_state_change = callback

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin one recognition cycle.  No-op if already listening.

        Raises:
            UnsupportedCapabilityError: if there is no usable engine.
        """
        if not self.is_supported:
            raise UnsupportedCapabilityError(
                "speech recognition",
                "no engine" if self._engine is None else "engine unavailable",
            )
        if self.is_listening:
            return

        self._cycle += 1
        cycle = self._cycle
        self._set_state(SessionState.LISTENING)
        self._emit(StartedEvent(cycle=cycle))
        self._task = asyncio.create_task(self._run_cycle(cycle))
        logger.info("Recognition cycle %d started (lang=%s)", cycle, self._config.language)

    async def stop(self) -> None:
        """End listening.  Safe to call when idle."""
        task = self._task
        if task is None or task.done():
            return
        if self._engine is not None:
            self._engine.abort()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        if self._state == SessionState.LISTENING:
            # Cancelled before the cycle got to run its own cleanup.
            self._task = None
            self._set_state(SessionState.IDLE)
            self._emit(EndedEvent(cycle=self._cycle, reason=EndReason.STOPPED))
        logger.info("Recognition cycle %d stopped", self._cycle)

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------

    async def next_event(self) -> RecognitionEvent:
        """Wait for the next event from any cycle, in emission order."""
        return await self._events.get()

    async def events(self) -> AsyncIterator[RecognitionEvent]:
        """Iterate events forever."""
        while True:
            yield await self._events.get()

    def pending_events(self) -> int:
        return self._events.qsize()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_cycle(self, cycle: int) -> None:
        reason = EndReason.ERROR
        try:
            got_final = False
            async with aclosing(self._engine.listen(self._config)) as results:
                async for result in results:
                    transcript = TranscriptEvent.from_result(result)
                    if not transcript.is_final and not self._config.interim_results:
                        continue
                    self._emit(ResultEvent(cycle=cycle, transcript=transcript))
                    if transcript.is_final:
                        got_final = True
                        break
            if got_final:
                reason = EndReason.FINAL
            else:
                self._emit(ErrorEvent(cycle=cycle, code=RecognitionErrorCode.NO_SPEECH))
        except asyncio.CancelledError:
            reason = EndReason.STOPPED
            raise
        except RecognitionError as exc:
            code = RecognitionErrorCode.parse(exc.code)
            logger.info("Recognition cycle %d failed: %s", cycle, code.value)
            self._emit(ErrorEvent(cycle=cycle, code=code, detail=exc.detail))
        except Exception as exc:
            logger.warning("Recognition engine crashed in cycle %d", cycle, exc_info=True)
            self._emit(
                ErrorEvent(cycle=cycle, code=RecognitionErrorCode.NETWORK, detail=str(exc))
            )
        finally:
            self._task = None
            self._set_state(SessionState.IDLE)
            self._emit(EndedEvent(cycle=cycle, reason=reason))

    def _emit(self, event: RecognitionEvent) -> None:
        self._events.put_nowait(event)

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(state)
        except Exception:
            logger.warning("Listening indicator callback failed", exc_info=True)
