import pytest

from cron_scheduler.domain.task import NullTask, TaskState
from cron_scheduler.exceptions import ConfigurationError, NotFoundError, TransportError
from cron_scheduler.scheduler import Scheduler
from cron_scheduler.transports.in_memory import InMemoryTransport
from cron_scheduler.transports.round_robin import RoundRobinTransport


@pytest.mark.asyncio
async def test_without_transports():
    with pytest.raises(TransportError, match="No transport found"):
        await RoundRobinTransport([]).clear()


@pytest.mark.asyncio
async def test_consecutive_calls_use_different_transports():
    first, second = InMemoryTransport(), InMemoryTransport()
    transport = RoundRobinTransport([first, second])

    await transport.create(NullTask(name="foo"))
    await transport.create(NullTask(name="bar"))

    assert [task.name for task in await first.list()] == ["foo"]
    assert [task.name for task in await second.list()] == ["bar"]


@pytest.mark.asyncio
async def test_failing_transport_is_skipped_within_a_call(broken_transport):
    broken, working = broken_transport(), InMemoryTransport()
    transport = RoundRobinTransport([broken, working])

    await transport.create(NullTask(name="foo"))
    await transport.create(NullTask(name="bar"))

    assert len(await working.list()) == 2
    assert broken.calls == 2


@pytest.mark.asyncio
async def test_each_call_starts_a_fresh_round(broken_transport):
    broken = broken_transport()
    transport = RoundRobinTransport([broken, InMemoryTransport()])

    for _ in range(3):
        assert len(await transport.list()) == 0

    # The broken transport is tried again by every call.
    assert broken.calls == 3


@pytest.mark.asyncio
async def test_all_transports_failing(broken_transport):
    first, second = broken_transport(), broken_transport()
    transport = RoundRobinTransport([first, second])

    with pytest.raises(TransportError, match="All the transports failed to execute the requested action"):
        await transport.list()

    assert first.calls == 1
    assert second.calls == 1


def test_quantum_option():
    assert RoundRobinTransport([]).options == {"quantum": 2}
    assert RoundRobinTransport([], {"quantum": "5"}).options == {"quantum": 5}

    with pytest.raises(ConfigurationError):
        RoundRobinTransport([], {"quantum": "many"})


@pytest.mark.asyncio
async def test_task_held_by_another_transport_is_found():
    first, second = InMemoryTransport(), InMemoryTransport()
    transport = RoundRobinTransport([first, second])
    await transport.create(NullTask(name="foo"))

    # The round starts on the second transport, which does not hold the task.
    assert (await transport.get("foo")).name == "foo"

    await transport.pause("foo")
    assert (await first.get("foo")).state == TaskState.PAUSED

    await transport.delete("foo")
    assert len(await first.list()) == 0


@pytest.mark.asyncio
async def test_task_held_by_no_transport():
    transport = RoundRobinTransport([InMemoryTransport(), InMemoryTransport()])

    with pytest.raises(NotFoundError):
        await transport.get("foo")


@pytest.mark.asyncio
async def test_missing_task_and_failing_transport(broken_transport):
    transport = RoundRobinTransport([InMemoryTransport(), broken_transport()])

    with pytest.raises(TransportError, match="All the transports failed"):
        await transport.delete("foo")


@pytest.mark.asyncio
async def test_scheduler_over_round_robin_transports():
    first, second = InMemoryTransport(), InMemoryTransport()
    scheduler = Scheduler("UTC", RoundRobinTransport([first, second]))
    await scheduler.schedule(NullTask(name="foo"))

    await scheduler.pause("foo")
    await scheduler.resume("foo")
    await scheduler.unschedule("foo")

    assert len(await first.list()) == 0
    assert len(await second.list()) == 0
