"""
Hand-off of queued tasks to an external queue, and their execution on the consumer side.

The scheduler only knows about ``TaskDispatcher``; delivery guarantees belong to
the dispatcher implementation.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Protocol

from celery import Celery
from pydantic import BaseModel

from cron_scheduler.domain.serialization import deserialize_task, serialize_task
from cron_scheduler.domain.task import AnyTask

if TYPE_CHECKING:
    from cron_scheduler.worker import Worker

logger = logging.getLogger(__name__)


class TaskMessage(BaseModel):
    task: AnyTask

    def to_json(self) -> str:
        return serialize_task(self.task)

    @classmethod
    def from_json(cls, body: str) -> "TaskMessage":
        return cls(task=deserialize_task(body))


class TaskDispatcher(Protocol):
    async def dispatch(self, message: TaskMessage) -> None:
        ...


class TaskMessageHandler:
    """
    Runs the task of a message on a worker, once the worker is idle.
    """

    def __init__(self, worker: "Worker", poll_interval: float = 0.1):
        self._worker = worker
        self._poll_interval = poll_interval

    async def __call__(self, message: TaskMessage) -> None:
        while self._worker.is_running:
            await asyncio.sleep(self._poll_interval)

        logger.info("Executing queued task '%s'", message.task.name)
        await self._worker.execute(None, message.task)


class CeleryTaskDispatcher:
    """
    Sends queued tasks to Celery. The Celery worker rebuilds the task from its JSON
    body and runs it through the handler returned by ``handler_factory``.
    """

    def __init__(
        self,
        celery_app: Celery,
        handler_factory: Callable[[], TaskMessageHandler],
        task_name: str = "cron_scheduler.execute_task",
    ):
        self.app = celery_app

        @self.app.task(name=task_name)
        def execute_task(body: str) -> None:
            async def _execute():
                handler = handler_factory()
                await handler(TaskMessage.from_json(body))
            asyncio.run(_execute())

        self.celery_task = execute_task

    async def dispatch(self, message: TaskMessage) -> None:
        self.celery_task.apply_async(args=[message.to_json()])
