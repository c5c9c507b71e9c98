"""
Tests for the in-process event bus.
"""
import logging

import pytest

from donorledger.services.events import EventBus


@pytest.mark.asyncio
async def test_sync_and_async_handlers():
    bus = EventBus()
    seen = []

    async def async_handler(**payload):
        seen.append(("async", payload["value"]))

    bus.subscribe("thing.happened", lambda **payload: seen.append(("sync", payload["value"])))
    bus.subscribe("thing.happened", async_handler)

    delivered = await bus.emit("thing.happened", value=7)
    assert delivered == 2
    assert seen == [("sync", 7), ("async", 7)]


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_skipped(caplog):
    bus = EventBus()
    seen = []

    def broken(**payload):
        raise RuntimeError("boom")

    bus.subscribe("thing.happened", broken)
    bus.subscribe("thing.happened", lambda **payload: seen.append(payload))

    with caplog.at_level(logging.ERROR, logger="donorledger.services.events"):
        delivered = await bus.emit("thing.happened", value=1)

    assert delivered == 1
    assert seen == [{"value": 1}]
    assert "failed for thing.happened" in caplog.text


@pytest.mark.asyncio
async def test_subscribe_is_idempotent_and_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(**payload):
        calls.append(payload)

    bus.subscribe("x", handler)
    bus.subscribe("x", handler)
    assert len(bus.handlers("x")) == 1

    assert bus.unsubscribe("x", handler) is True
    assert bus.unsubscribe("x", handler) is False
    assert await bus.emit("x") == 0
    assert calls == []
