import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.events import (
    EventDispatcher,
    TaskPausedEvent,
    TaskResumedEvent,
    TaskScheduledEvent,
    TaskUnscheduledEvent,
    TaskUpdatedEvent,
)
from cron_scheduler.exceptions import ConfigurationError
from cron_scheduler.locks import LockStore
from cron_scheduler.messaging import TaskDispatcher, TaskMessage
from cron_scheduler.policies.orchestrator import SchedulePolicyOrchestrator
from cron_scheduler.transports.base import BaseTransport

logger = logging.getLogger(__name__)

DUE_TASKS_LOCK = "cron_scheduler.due_tasks"


class Scheduler:
    """
    Entry point for managing tasks: every operation goes through the transport and
    emits the matching event.

    Tasks returned by the scheduler are snapshots; changing them has no effect
    until they are passed to ``update``.
    """

    def __init__(
        self,
        timezone: str,
        transport: BaseTransport,
        event_dispatcher: Optional[EventDispatcher] = None,
        dispatcher: Optional[TaskDispatcher] = None,
        orchestrator: Optional[SchedulePolicyOrchestrator] = None,
        policy: str = "first_in_first_out",
    ):
        try:
            self._timezone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown timezone '{timezone}'") from e
        self.transport = transport
        self.event_dispatcher = event_dispatcher if event_dispatcher is not None else EventDispatcher()
        self._dispatcher = dispatcher
        self._orchestrator = orchestrator if orchestrator is not None else SchedulePolicyOrchestrator()
        self._policy = policy

    def get_timezone(self) -> ZoneInfo:
        return self._timezone

    async def schedule(self, task: Task) -> None:
        """
        Store the task, or hand it to the dispatcher when it is queued.

        Raises:
            ConflictError: If a task with the same name is already stored.
        """
        now = datetime.now(self._timezone)
        task.localize(self._timezone.key)
        if task.scheduled_at is None:
            task.scheduled_at = now
        if task.arrival_time is None:
            task.arrival_time = now

        if task.queued and self._dispatcher is not None:
            await self._dispatcher.dispatch(TaskMessage(task=task))
            logger.info("Task '%s' dispatched", task.name)
        else:
            if task.queued:
                logger.warning("Task '%s' is queued but no dispatcher is configured, storing it", task.name)
            await self.transport.create(task)
            logger.info("Task '%s' scheduled", task.name)

        self.event_dispatcher.dispatch(TaskScheduledEvent(task=task))

    async def unschedule(self, name: str) -> None:
        await self.transport.delete(name)
        logger.info("Task '%s' unscheduled", name)
        self.event_dispatcher.dispatch(TaskUnscheduledEvent(task_name=name))

    async def update(self, name: str, task: Task) -> None:
        await self.transport.update(name, task)
        self.event_dispatcher.dispatch(TaskUpdatedEvent(task=task))

    async def pause(self, name: str) -> None:
        await self.transport.pause(name)
        logger.info("Task '%s' paused", name)
        self.event_dispatcher.dispatch(TaskPausedEvent(task_name=name))

    async def resume(self, name: str) -> None:
        await self.transport.resume(name)
        logger.info("Task '%s' resumed", name)
        self.event_dispatcher.dispatch(TaskResumedEvent(task_name=name))

    async def get_tasks(self) -> TaskList[Task]:
        return await self.transport.list()

    async def get_due_tasks(self, lock: Optional[LockStore] = None, now: Optional[datetime] = None) -> TaskList[Task]:
        """
        Get the enabled tasks whose expression matches the current minute and whose
        execution window contains it, sorted with the configured policy.

        Args:
            lock: When given, the computation is skipped (empty result) if another
                process is already computing the due tasks.
            now: Reference time, the current time by default. A naive value is
                read in the scheduler timezone.
        """
        if lock is not None and not await lock.acquire(DUE_TASKS_LOCK):
            logger.info("Due tasks are already being computed elsewhere, skipping")
            return TaskList()

        try:
            if now is None:
                now = datetime.now(self._timezone)
            elif now.tzinfo is None:
                now = now.replace(tzinfo=self._timezone)

            tasks = await self.get_tasks()
            due = tasks.filter(lambda task: self._is_due(task, now))
            return self._orchestrator.sort(self._policy, due)
        finally:
            if lock is not None:
                await lock.release(DUE_TASKS_LOCK)

    def _is_due(self, task: Task, now: datetime) -> bool:
        if not task.is_enabled:
            return False

        zone = task.get_timezone() or self._timezone
        local_now = now.astimezone(zone)
        if not croniter.match(task.expression, local_now):
            return False

        start, end = task.execution_start_date, task.execution_end_date
        if start is not None and local_now < (start if start.tzinfo else start.replace(tzinfo=zone)):
            return False
        if end is not None and local_now > (end if end.tzinfo else end.replace(tzinfo=zone)):
            return False
        return True
