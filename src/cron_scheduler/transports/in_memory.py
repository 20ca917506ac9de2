import logging
from typing import Any, Dict, Optional

from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.exceptions import ConflictError, NotFoundError
from cron_scheduler.policies.orchestrator import SchedulePolicyOrchestrator
from cron_scheduler.transports.base import BaseTransport

logger = logging.getLogger(__name__)


class InMemoryTransport(BaseTransport):
    """
    Keeps the tasks in a dict owned by the instance.

    Tasks are copied on the way in and out, so callers always get snapshots.
    When an orchestrator is given, ``list`` returns the tasks sorted with the
    ``execution_mode`` policy.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None, orchestrator: Optional[SchedulePolicyOrchestrator] = None):
        super().__init__({"execution_mode": "first_in_first_out", **(options or {})})
        self._orchestrator = orchestrator
        self._tasks: Dict[str, Task] = {}

    async def list(self) -> TaskList[Task]:
        tasks = TaskList(task.model_copy(deep=True) for task in self._tasks.values())
        if self._orchestrator is None:
            return tasks
        return self._orchestrator.sort(self._options["execution_mode"], tasks)

    async def get(self, name: str) -> Task:
        if name not in self._tasks:
            raise NotFoundError(f"The task '{name}' does not exist")
        return self._tasks[name].model_copy(deep=True)

    async def create(self, task: Task) -> None:
        if task.name in self._tasks:
            raise ConflictError(f"The task '{task.name}' has already been scheduled")
        self._tasks[task.name] = task.model_copy(deep=True)

    async def update(self, name: str, task: Task) -> None:
        if name not in self._tasks:
            raise NotFoundError(f"The task '{name}' does not exist")
        if task.name != name:
            if task.name in self._tasks:
                raise ConflictError(f"The task '{task.name}' has already been scheduled")
            del self._tasks[name]
        self._tasks[task.name] = task.model_copy(deep=True)

    async def delete(self, name: str) -> None:
        if self._tasks.pop(name, None) is None:
            raise NotFoundError(f"The task '{name}' does not exist")

    async def clear(self) -> None:
        self._tasks.clear()
