"""Async fan-out bus used for chat messages and UI actions."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, TypeVar

logger = logging.getLogger(__name__)

_DEFAULT_QUEUE_SIZE = 256

T = TypeVar("T")


class EventBus(Generic[T]):
    """Fan-out bus backed by one asyncio.Queue per subscriber.

    A full subscriber queue drops the event for that subscriber only, so a
    stalled SSE client never blocks the dispatch loop that emits.
    """

    def __init__(self, maxsize: int = _DEFAULT_QUEUE_SIZE) -> None:
        self._subscribers: list[asyncio.Queue[T]] = []
        self._maxsize = maxsize
        self._dropped: int = 0

    async def emit(self, event: T) -> None:
        """Push *event* to every subscriber queue."""
        self.emit_nowait(event)

    def emit_nowait(self, event: T) -> None:
        """Synchronous ``emit`` for callbacks that cannot await."""
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self._dropped += 1
                logger.warning(
                    "Subscriber queue full, dropping %s",
                    getattr(event, "kind", type(event).__name__),
                )

    async def subscribe(self) -> asyncio.Queue[T]:
        """Create and return a new subscriber queue."""
        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.append(queue)
        logger.debug("Subscriber added (total: %d)", len(self._subscribers))
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[T]) -> None:
        """Remove a subscriber queue.  No-op if the queue is not registered."""
        try:
            self._subscribers.remove(queue)
        except ValueError:
            logger.debug("Unsubscribe of unknown queue ignored")
            return
        logger.debug("Subscriber removed (remaining: %d)", len(self._subscribers))

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue[T]]:
        """Subscribe for the duration of an ``async with`` block."""
        queue = await self.subscribe()
        try:
            yield queue
        finally:
            await self.unsubscribe(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def dropped_count(self) -> int:
        """Events dropped because a subscriber queue was full."""
        return self._dropped
