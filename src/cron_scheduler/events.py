"""
Domain events and the in-process dispatcher used by the scheduler and the worker.

Listeners are plain callables receiving the event. Subscribers are objects exposing
``subscribed_events()``, a mapping of event class to the name of the method to call.
"""
import logging
import time
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict

from cron_scheduler.domain.output import FailedTask, Output
from cron_scheduler.domain.task import Task

logger = logging.getLogger(__name__)


class Event(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class TaskEvent(Event):
    pass


class TaskScheduledEvent(TaskEvent):
    task: Task


class TaskUnscheduledEvent(TaskEvent):
    task_name: str


class TaskUpdatedEvent(TaskEvent):
    task: Task


class TaskPausedEvent(TaskEvent):
    task_name: str


class TaskResumedEvent(TaskEvent):
    task_name: str


class TaskExecutingEvent(TaskEvent):
    task: Task


class TaskExecutedEvent(TaskEvent):
    task: Task
    output: Output


class TaskFailedEvent(TaskEvent):
    failed_task: FailedTask


class WorkerEvent(Event):
    worker: Any


class WorkerStartedEvent(WorkerEvent):
    pass


class WorkerRunningEvent(WorkerEvent):
    """
    Dispatched after each task handled by the worker.
    """


class WorkerStoppedEvent(WorkerEvent):
    pass


Listener = Callable[[Event], None]


class EventDispatcher:
    def __init__(self) -> None:
        self._listeners: DefaultDict[Type[Event], List[Listener]] = defaultdict(list)

    def subscribe(self, event_type: Type[Event], listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def add_subscriber(self, subscriber: Any) -> None:
        for event_type, method in subscriber.subscribed_events().items():
            self.subscribe(event_type, getattr(subscriber, method))

    def remove_subscriber(self, subscriber: Any) -> None:
        for event_type, method in subscriber.subscribed_events().items():
            listener = getattr(subscriber, method)
            if listener in self._listeners.get(event_type, []):
                self._listeners[event_type].remove(listener)

    def dispatch(self, event: Event) -> Event:
        """
        Call every listener registered for the event class or one of its parents,
        in subscription order.
        """
        for event_type in type(event).__mro__:
            for listener in self._listeners.get(event_type, []):
                listener(event)
        return event


class StopWorkerOnTaskLimitSubscriber:
    """
    Stops the worker once ``limit`` tasks have been handled.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("The task limit must be greater than 0")
        self._limit = limit
        self._consumed = 0

    def on_worker_running(self, event: WorkerRunningEvent) -> None:
        self._consumed += 1
        if self._consumed >= self._limit:
            logger.info("Worker stopped due to maximum count of %d tasks executed", self._limit)
            self._consumed = 0
            event.worker.stop()

    def subscribed_events(self) -> Dict[Type[Event], str]:
        return {WorkerRunningEvent: "on_worker_running"}


class StopWorkerOnTimeLimitSubscriber:
    """
    Stops the worker once it has been running for ``time_limit`` seconds.
    The check happens after each handled task.
    """

    def __init__(self, time_limit: float):
        if time_limit <= 0:
            raise ValueError("The time limit must be greater than 0")
        self._time_limit = time_limit
        self._end_time: Optional[float] = None

    def on_worker_started(self, event: WorkerStartedEvent) -> None:
        self._end_time = time.monotonic() + self._time_limit

    def on_worker_running(self, event: WorkerRunningEvent) -> None:
        if self._end_time is not None and time.monotonic() >= self._end_time:
            logger.info("Worker stopped due to time limit of %s seconds exceeded", self._time_limit)
            event.worker.stop()

    def subscribed_events(self) -> Dict[Type[Event], str]:
        return {
            WorkerStartedEvent: "on_worker_started",
            WorkerRunningEvent: "on_worker_running",
        }


class TaskEventList:
    """
    Records the task events going through a dispatcher.
    """

    def __init__(self) -> None:
        self.events: List[TaskEvent] = []

    def on_task_event(self, event: TaskEvent) -> None:
        self.events.append(event)

    def subscribed_events(self) -> Dict[Type[Event], str]:
        return {TaskEvent: "on_task_event"}

    def get_scheduled_events(self) -> List[TaskScheduledEvent]:
        return [e for e in self.events if isinstance(e, TaskScheduledEvent)]

    def get_executed_events(self) -> List[TaskExecutedEvent]:
        return [e for e in self.events if isinstance(e, TaskExecutedEvent)]

    def get_failed_events(self) -> List[TaskFailedEvent]:
        return [e for e in self.events if isinstance(e, TaskFailedEvent)]

    def __len__(self) -> int:
        return len(self.events)
