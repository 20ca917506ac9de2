import pytest

from cron_scheduler.domain.task import NullTask, TaskState
from cron_scheduler.exceptions import ConflictError, NotFoundError, TransportError
from cron_scheduler.transports.failover import FailoverTransport
from cron_scheduler.transports.in_memory import InMemoryTransport


@pytest.mark.asyncio
async def test_without_transports():
    with pytest.raises(TransportError, match="No transport found"):
        await FailoverTransport([]).list()


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", [0, 1, 2])
async def test_first_working_transport_is_used(failing, broken_transport):
    broken = [broken_transport() for _ in range(failing)]
    working = InMemoryTransport()
    spare = InMemoryTransport()
    transport = FailoverTransport([*broken, working, spare])

    await transport.create(NullTask(name="foo"))

    assert (await working.get("foo")).name == "foo"
    assert len(await spare.list()) == 0
    assert transport.failed_transports == broken
    assert (await transport.get("foo")).name == "foo"


@pytest.mark.asyncio
async def test_failed_transports_are_never_retried(broken_transport):
    broken = broken_transport()
    transport = FailoverTransport([broken, InMemoryTransport()])

    await transport.create(NullTask(name="foo"))
    await transport.list()
    await transport.pause("foo")

    assert broken.calls == 1
    assert (await transport.get("foo")).state == TaskState.PAUSED


@pytest.mark.asyncio
async def test_all_transports_failing(broken_transport):
    transport = FailoverTransport([broken_transport(), broken_transport()])

    with pytest.raises(TransportError, match="All the transports failed to execute the requested action") as e:
        await transport.list()
    assert isinstance(e.value.__cause__, TransportError)

    with pytest.raises(TransportError, match="All the transports failed"):
        await transport.list()


@pytest.mark.asyncio
async def test_domain_errors_do_not_fail_the_transport():
    working = InMemoryTransport()
    transport = FailoverTransport([working, InMemoryTransport()])
    await transport.create(NullTask(name="foo"))

    with pytest.raises(ConflictError):
        await transport.create(NullTask(name="foo"))
    with pytest.raises(NotFoundError):
        await transport.get("bar")

    assert transport.failed_transports == []


def test_default_options():
    assert FailoverTransport([]).options == {"mode": "normal"}
