import pytest

from cron_scheduler.domain.task import NullTask
from cron_scheduler.events import (
    EventDispatcher,
    StopWorkerOnTaskLimitSubscriber,
    StopWorkerOnTimeLimitSubscriber,
    TaskEvent,
    TaskEventList,
    TaskScheduledEvent,
    TaskUnscheduledEvent,
    WorkerRunningEvent,
)


class FakeWorker:
    def __init__(self):
        self.stopped = False

    def stop(self):
        self.stopped = True


def test_listeners_receive_subclass_events_in_order():
    dispatcher = EventDispatcher()
    calls = []
    dispatcher.subscribe(TaskScheduledEvent, lambda event: calls.append("scheduled"))
    dispatcher.subscribe(TaskEvent, lambda event: calls.append("any task event"))

    dispatcher.dispatch(TaskScheduledEvent(task=NullTask(name="foo")))
    dispatcher.dispatch(TaskUnscheduledEvent(task_name="foo"))

    assert calls == ["scheduled", "any task event", "any task event"]


def test_remove_subscriber():
    dispatcher = EventDispatcher()
    recorder = TaskEventList()
    dispatcher.add_subscriber(recorder)
    dispatcher.dispatch(TaskUnscheduledEvent(task_name="foo"))

    dispatcher.remove_subscriber(recorder)
    dispatcher.dispatch(TaskUnscheduledEvent(task_name="bar"))

    assert len(recorder) == 1


def test_task_limit_subscriber():
    worker = FakeWorker()
    subscriber = StopWorkerOnTaskLimitSubscriber(2)

    subscriber.on_worker_running(WorkerRunningEvent(worker=worker))
    assert not worker.stopped
    subscriber.on_worker_running(WorkerRunningEvent(worker=worker))
    assert worker.stopped


@pytest.mark.parametrize("subscriber_class, limit", [
    (StopWorkerOnTaskLimitSubscriber, 0),
    (StopWorkerOnTimeLimitSubscriber, 0),
])
def test_invalid_limits(subscriber_class, limit):
    with pytest.raises(ValueError):
        subscriber_class(limit)
