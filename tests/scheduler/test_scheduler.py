from typing import List

import pytest

from cron_scheduler.domain.task import NullTask, TaskState
from cron_scheduler.events import (
    EventDispatcher,
    TaskEventList,
    TaskPausedEvent,
    TaskResumedEvent,
    TaskUnscheduledEvent,
    TaskUpdatedEvent,
)
from cron_scheduler.exceptions import ConfigurationError, ConflictError, NotFoundError
from cron_scheduler.messaging import TaskMessage
from cron_scheduler.scheduler import Scheduler
from cron_scheduler.transports.in_memory import InMemoryTransport


class RecordingDispatcher:
    def __init__(self):
        self.messages: List[TaskMessage] = []

    async def dispatch(self, message: TaskMessage) -> None:
        self.messages.append(message)


@pytest.fixture(scope="function")
def recorder():
    return TaskEventList()


@pytest.fixture(scope="function")
def scheduler(recorder):
    dispatcher = EventDispatcher()
    dispatcher.add_subscriber(recorder)
    return Scheduler("Europe/Paris", InMemoryTransport(), event_dispatcher=dispatcher)


def test_unknown_timezone():
    with pytest.raises(ConfigurationError):
        Scheduler("Nowhere/Land", InMemoryTransport())


@pytest.mark.asyncio
async def test_schedule_sets_defaults(scheduler, recorder):
    await scheduler.schedule(NullTask(name="foo"))

    task = await scheduler.transport.get("foo")
    assert task.timezone == "Europe/Paris"
    assert task.scheduled_at is not None
    assert task.arrival_time is not None
    assert len(recorder.get_scheduled_events()) == 1


@pytest.mark.asyncio
async def test_schedule_keeps_task_timezone(scheduler):
    await scheduler.schedule(NullTask(name="foo", timezone="America/New_York"))

    assert (await scheduler.transport.get("foo")).timezone == "America/New_York"


@pytest.mark.asyncio
async def test_schedule_duplicate(scheduler, recorder):
    await scheduler.schedule(NullTask(name="foo", priority=1))

    with pytest.raises(ConflictError):
        await scheduler.schedule(NullTask(name="foo", priority=2))

    assert (await scheduler.transport.get("foo")).priority == 1
    assert len(recorder.get_scheduled_events()) == 1


@pytest.mark.asyncio
async def test_queued_task_goes_to_the_dispatcher(recorder):
    dispatcher = RecordingDispatcher()
    events = EventDispatcher()
    events.add_subscriber(recorder)
    scheduler = Scheduler("UTC", InMemoryTransport(), event_dispatcher=events, dispatcher=dispatcher)

    await scheduler.schedule(NullTask(name="foo", queued=True))

    assert [message.task.name for message in dispatcher.messages] == ["foo"]
    assert len(await scheduler.get_tasks()) == 0
    assert len(recorder.get_scheduled_events()) == 1


@pytest.mark.asyncio
async def test_queued_task_without_dispatcher_is_stored(scheduler):
    await scheduler.schedule(NullTask(name="foo", queued=True))

    assert (await scheduler.get_tasks()).has("foo")


@pytest.mark.asyncio
async def test_unschedule(scheduler, recorder):
    await scheduler.schedule(NullTask(name="foo"))

    await scheduler.unschedule("foo")

    assert len(await scheduler.get_tasks()) == 0
    assert isinstance(recorder.events[-1], TaskUnscheduledEvent)
    with pytest.raises(NotFoundError):
        await scheduler.unschedule("foo")


@pytest.mark.asyncio
async def test_update(scheduler, recorder):
    await scheduler.schedule(NullTask(name="foo"))
    task = await scheduler.transport.get("foo")
    task.description = "Updated"

    await scheduler.update("foo", task)

    assert (await scheduler.transport.get("foo")).description == "Updated"
    assert isinstance(recorder.events[-1], TaskUpdatedEvent)


@pytest.mark.asyncio
async def test_pause_and_resume(scheduler, recorder):
    await scheduler.schedule(NullTask(name="foo"))

    await scheduler.pause("foo")
    assert (await scheduler.transport.get("foo")).state == TaskState.PAUSED
    assert isinstance(recorder.events[-1], TaskPausedEvent)
    with pytest.raises(ConflictError):
        await scheduler.pause("foo")

    await scheduler.resume("foo")
    assert (await scheduler.transport.get("foo")).state == TaskState.ENABLED
    assert isinstance(recorder.events[-1], TaskResumedEvent)
    with pytest.raises(ConflictError):
        await scheduler.resume("foo")


@pytest.mark.asyncio
async def test_get_tasks_returns_snapshots(scheduler):
    await scheduler.schedule(NullTask(name="foo"))

    (await scheduler.get_tasks())["foo"].priority = 100

    assert (await scheduler.get_tasks())["foo"].priority == 0
