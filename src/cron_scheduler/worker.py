import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from cron_scheduler.domain.output import FailedTask
from cron_scheduler.domain.task import ExecutionState, Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.events import (
    Event,
    EventDispatcher,
    StopWorkerOnTaskLimitSubscriber,
    StopWorkerOnTimeLimitSubscriber,
    TaskExecutedEvent,
    TaskExecutingEvent,
    TaskFailedEvent,
    WorkerRunningEvent,
    WorkerStartedEvent,
    WorkerStoppedEvent,
)
from cron_scheduler.exceptions import NotFoundError, TransportError, UndefinedRunnerError
from cron_scheduler.locks import InMemoryLockStore, LockStore
from cron_scheduler.runner_registry import RunnerRegistry
from cron_scheduler.runners.protocol import TaskRunner
from cron_scheduler.scheduler import Scheduler
from cron_scheduler.tracker import TaskExecutionTracker

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset({
    ExecutionState.SUCCEED, ExecutionState.ERRORED, ExecutionState.INCOMPLETE, ExecutionState.TO_RETRY,
})


class WorkerOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    sleep_duration_delay: float = Field(default=1, ge=0, alias="sleepDurationDelay", description="Seconds between two cycles")
    task_limit: Optional[int] = Field(default=None, ge=1, alias="taskLimit", description="Stop after N handled tasks")
    time_limit: Optional[float] = Field(default=None, gt=0, alias="timeLimit", description="Stop after N seconds")


class Worker:
    """
    Executes the due tasks of a scheduler, cycle after cycle, until stopped.

    Tasks of a cycle run one at a time in the order given by the schedule policy.
    A task failing never stops the cycle: it is recorded in ``get_failed_tasks()``
    under ``<name>.failed``. A task that no runner supports is a configuration
    error and aborts ``execute``.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        runners: Union[RunnerRegistry, Iterable[TaskRunner]],
        tracker: Optional[TaskExecutionTracker] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        lock_store: Optional[LockStore] = None,
    ):
        self._scheduler = scheduler
        self._runners = runners if isinstance(runners, RunnerRegistry) else RunnerRegistry(runners)
        self._tracker = tracker if tracker is not None else TaskExecutionTracker()
        self._event_dispatcher = event_dispatcher if event_dispatcher is not None else scheduler.event_dispatcher
        self._lock_store = lock_store if lock_store is not None else InMemoryLockStore()
        self._options = WorkerOptions()
        self._failed_tasks: TaskList[FailedTask] = TaskList()
        self._last_executed_task: Optional[Task] = None
        self._running = False
        self._should_stop = False

    @property
    def is_running(self) -> bool:
        return self._running

    def get_options(self) -> WorkerOptions:
        return self._options

    def get_failed_tasks(self) -> TaskList[FailedTask]:
        return self._failed_tasks

    def get_last_executed_task(self) -> Optional[Task]:
        return self._last_executed_task

    def stop(self) -> None:
        """
        Ask the worker to stop; the task being executed, if any, runs to completion.
        Called while idle, the next ``execute`` returns without touching the scheduler.
        """
        self._should_stop = True

    async def execute(self, options: Union[WorkerOptions, Dict[str, Any], None] = None, *tasks: Task) -> None:
        """
        Run cycles until the worker is stopped.

        Args:
            options: WorkerOptions or a dict of them (``sleepDurationDelay``, ``taskLimit``, ``timeLimit``).
            *tasks: When given, these tasks are executed in a single cycle instead of the
                due tasks of the scheduler, then the worker stops.

        Raises:
            UndefinedRunnerError: If the worker has no runner, or none supports a due task.
        """
        if not len(self._runners):
            raise UndefinedRunnerError("No runner found")

        self._options = options if isinstance(options, WorkerOptions) else WorkerOptions.model_validate(options or {})
        self._failed_tasks = TaskList()
        self._running = True

        subscribers = self._stop_subscribers()
        for subscriber in subscribers:
            self._event_dispatcher.add_subscriber(subscriber)

        self._dispatch(WorkerStartedEvent(worker=self))
        try:
            while not self._should_stop:
                due_tasks = TaskList(tasks) if tasks else await self._scheduler.get_due_tasks(lock=self._lock_store)

                for task in due_tasks:
                    if not await self._handle(task):
                        continue
                    self._dispatch(WorkerRunningEvent(worker=self))
                    if self._should_stop:
                        break

                if tasks or self._should_stop:
                    break
                await asyncio.sleep(self._options.sleep_duration_delay)
        finally:
            self._running = False
            self._should_stop = False
            for subscriber in subscribers:
                self._event_dispatcher.remove_subscriber(subscriber)
            self._dispatch(WorkerStoppedEvent(worker=self))

    def _stop_subscribers(self) -> List[Any]:
        subscribers: List[Any] = []
        if self._options.task_limit is not None:
            subscribers.append(StopWorkerOnTaskLimitSubscriber(self._options.task_limit))
        if self._options.time_limit is not None:
            subscribers.append(StopWorkerOnTimeLimitSubscriber(self._options.time_limit))
        return subscribers

    async def _handle(self, task: Task) -> bool:
        """
        Execute a task under its single-run lock. Return False if it was skipped.
        """
        if not task.is_enabled:
            logger.info("Task '%s' is %s, skipped", task.name, task.state.value)
            return False

        if task.single_run and not await self._lock_store.acquire(task.name):
            logger.info("Task '%s' is already being executed elsewhere, skipped", task.name)
            return False

        try:
            await self._execute_task(task)
        finally:
            if task.single_run:
                await self._lock_store.release(task.name)
        return True

    async def _execute_task(self, task: Task) -> None:
        runner = self._runners.find(task)

        start = datetime.now(self._scheduler.get_timezone())
        task.arrival_time = start
        task.execution_start_time = start
        if task.execution_relative_deadline is not None:
            task.execution_absolute_deadline = start + task.execution_relative_deadline

        if task.execution_delay:
            await asyncio.sleep(task.execution_delay / 1_000_000)

        self._tracker.start_tracking(task)
        self._dispatch(TaskExecutingEvent(task=task))
        try:
            output = await runner.run(task)
        except Exception as e:
            logger.exception("Task '%s' raised during its execution", task.name)
            self._tracker.abort_tracking(task)
            if task.execution_state not in TERMINAL_STATES:
                task.execution_state = ExecutionState.ERRORED
            self._record_failure(task, str(e) or type(e).__name__)
            return

        task.execution_end_time = datetime.now(self._scheduler.get_timezone())
        self._tracker.end_tracking(task)

        if not output.is_success:
            logger.warning("Task '%s' failed: %s", task.name, output.output)
            self._record_failure(task, output.output or f"The task '{task.name}' failed")
            return

        task.last_execution = task.execution_end_time
        self._last_executed_task = task
        self._dispatch(TaskExecutedEvent(task=task, output=output))
        logger.info("Task '%s' executed", task.name)

        try:
            if task.single_run:
                await self._scheduler.unschedule(task.name)
            else:
                await self._scheduler.update(task.name, task)
        except (NotFoundError, TransportError) as e:
            logger.warning("Could not store the execution of task '%s': %s", task.name, e)

    def _record_failure(self, task: Task, reason: str) -> None:
        failed_task = FailedTask(task=task, reason=reason)
        self._failed_tasks.remove(failed_task.name)
        self._failed_tasks.add(failed_task)
        self._dispatch(TaskFailedEvent(failed_task=failed_task))

    def _dispatch(self, event: Event) -> None:
        self._event_dispatcher.dispatch(event)
