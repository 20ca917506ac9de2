import pytest

from cron_scheduler.domain.task import NullTask
from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.in_memory import InMemoryTransport
from cron_scheduler.transports.long_tail import LongTailTransport


@pytest.mark.asyncio
async def test_without_transports():
    with pytest.raises(TransportError, match="No transport found"):
        await LongTailTransport([]).list()


@pytest.mark.asyncio
async def test_calls_go_to_the_lightest_transport():
    heavy, light = InMemoryTransport(), InMemoryTransport()
    await heavy.create(NullTask(name="a"))
    await heavy.create(NullTask(name="b"))
    transport = LongTailTransport([heavy, light])

    await transport.create(NullTask(name="c"))
    assert [task.name for task in await light.list()] == ["c"]

    await transport.create(NullTask(name="d"))
    assert len(await light.list()) == 2

    # Both hold two tasks now, ties keep the original order.
    await transport.create(NullTask(name="e"))
    assert [task.name for task in await heavy.list()] == ["a", "b", "e"]


@pytest.mark.asyncio
async def test_no_fallback_on_failure(broken_transport):
    broken = broken_transport()
    transport = LongTailTransport([broken])

    with pytest.raises(TransportError, match="The transport failed to execute the requested action"):
        await transport.create(NullTask(name="foo"))


@pytest.mark.asyncio
async def test_transport_unable_to_count_goes_last(broken_transport):
    broken, working = broken_transport(), InMemoryTransport()
    transport = LongTailTransport([broken, working])

    await transport.create(NullTask(name="foo"))

    assert (await working.get("foo")).name == "foo"
