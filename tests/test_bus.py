import asyncio
import pytest
from tagnlu.core.bus import Bus

@pytest.mark.asyncio
async def test_publish_subscribe():
    bus = Bus()
    got = []

    async def handler(evt):
        got.append(evt["x"])

    bus.subscribe("demo", handler)
    await bus.publish("demo", {"x": 1})
    await asyncio.sleep(0.01)
    assert got == [1]

@pytest.mark.asyncio
async def test_failing_subscriber_does_not_stop_others():
    bus = Bus()
    got = []

    async def broken(evt):
        raise RuntimeError("boom")

    async def handler(evt):
        got.append(evt["x"])

    bus.subscribe("demo", broken)
    bus.subscribe("demo", handler)
    await bus.publish("demo", {"x": 2})
    assert got == [2]

@pytest.mark.asyncio
async def test_unsubscribe_and_clear():
    bus = Bus()
    got = []

    async def handler(evt):
        got.append(evt)

    bus.subscribe("demo", handler)
    bus.unsubscribe("demo", handler)
    await bus.publish("demo", {"x": 3})
    assert got == []

    bus.subscribe("demo", handler)
    bus.clear()
    assert bus.subscribers("demo") == []
