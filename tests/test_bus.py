from __future__ import annotations

import asyncio

from core.bus import AsyncIOBus
from core.models.events import Event, EventTypes


def test_publish_reaches_typed_and_wildcard_subscribers() -> None:
    typed: list[str] = []
    wildcard: list[str] = []

    async def on_typed(event: Event) -> None:
        typed.append(event.type)

    async def on_any(event: Event) -> None:
        wildcard.append(event.type)

    async def scenario():
        bus = AsyncIOBus()
        bus.subscribe(EventTypes.SYNC_READY, on_typed)
        bus.subscribe("*", on_any)
        await bus.publish(Event(type=EventTypes.SYNC_READY, source="test"))
        await bus.publish(Event(type=EventTypes.TRADE_APPLIED, source="test"))

    asyncio.run(scenario())

    assert typed == [EventTypes.SYNC_READY]
    assert wildcard == [EventTypes.SYNC_READY, EventTypes.TRADE_APPLIED]


def test_failing_subscriber_does_not_break_others() -> None:
    delivered: list[str] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("subscriber bug")

    async def healthy(event: Event) -> None:
        delivered.append(event.id)

    async def scenario():
        bus = AsyncIOBus()
        bus.subscribe(EventTypes.SYNC_FAILED, broken)
        bus.subscribe(EventTypes.SYNC_FAILED, healthy)
        event = Event(type=EventTypes.SYNC_FAILED, source="test")
        await bus.publish(event)
        return event

    event = asyncio.run(scenario())

    assert delivered == [event.id]


def test_unsubscribe_stops_delivery() -> None:
    delivered: list[Event] = []

    async def handler(event: Event) -> None:
        delivered.append(event)

    async def scenario():
        bus = AsyncIOBus()
        bus.subscribe("*", handler)
        bus.unsubscribe("*", handler)
        await bus.publish(Event(type=EventTypes.SYNC_STARTED, source="test"))

    asyncio.run(scenario())

    assert delivered == []
