"""Tests for sathi.events.event_bus — async fan-out bus for messages and actions."""

import asyncio

from sathi.events.event_bus import EventBus
from sathi.events.types import (
    ActionEvent,
    ActionType,
    ChatMessage,
    MessageKind,
    MessageRole,
)


def _message(text: str = "hello") -> ChatMessage:
    return ChatMessage(role=MessageRole.SYSTEM, text=text, kind=MessageKind.NOTICE)


class TestSubscribe:

    async def test_subscribe_returns_distinct_queues(self, event_bus: EventBus):
        q1 = await event_bus.subscribe()
        q2 = await event_bus.subscribe()
        assert isinstance(q1, asyncio.Queue)
        assert q1 is not q2
        assert event_bus.subscriber_count == 2

    async def test_subscription_context_cleans_up(self, event_bus: EventBus):
        async with event_bus.subscription() as queue:
            assert event_bus.subscriber_count == 1
            await event_bus.emit(_message())
            assert queue.qsize() == 1
        assert event_bus.subscriber_count == 0


class TestEmit:

    async def test_fanout_to_every_subscriber(self, event_bus: EventBus):
        q1 = await event_bus.subscribe()
        q2 = await event_bus.subscribe()
        action = ActionEvent(kind=ActionType.DIAL, target="tel:100")

        await event_bus.emit(action)

        assert q1.get_nowait() is action
        assert q2.get_nowait() is action

    async def test_order_is_preserved(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        messages = [_message(str(i)) for i in range(3)]
        for message in messages:
            await event_bus.emit(message)
        assert [queue.get_nowait() for _ in range(3)] == messages

    async def test_emit_without_subscribers_is_noop(self, event_bus: EventBus):
        await event_bus.emit(_message())
        assert event_bus.dropped_count == 0

    async def test_full_queue_drops_and_counts(self):
        bus = EventBus(maxsize=2)
        slow = await bus.subscribe()
        fast = await bus.subscribe()

        for i in range(2):
            await bus.emit(_message(str(i)))
        fast.get_nowait()
        fast.get_nowait()

        await bus.emit(_message("third"))

        assert slow.qsize() == 2
        assert fast.get_nowait().text == "third"
        assert bus.dropped_count == 1


class TestUnsubscribe:

    async def test_unsubscribe_stops_delivery(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        await event_bus.unsubscribe(queue)
        await event_bus.emit(_message())
        assert queue.empty()
        assert event_bus.subscriber_count == 0

    async def test_unknown_and_double_unsubscribe_are_noops(self, event_bus: EventBus):
        queue = await event_bus.subscribe()
        await event_bus.unsubscribe(asyncio.Queue())
        await event_bus.unsubscribe(queue)
        await event_bus.unsubscribe(queue)
        assert event_bus.subscriber_count == 0
