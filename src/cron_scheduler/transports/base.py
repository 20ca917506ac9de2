from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList


class BaseTransport(ABC):
    """
    Storage and retrieval of tasks.

    Implementations raise NotFoundError for unknown names and ConflictError for
    duplicates; any other backend failure is raised as TransportError with the
    original exception as its cause.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self._options: Dict[str, Any] = dict(options or {})

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    @abstractmethod
    async def list(self) -> TaskList[Task]:
        pass

    @abstractmethod
    async def get(self, name: str) -> Task:
        pass

    @abstractmethod
    async def create(self, task: Task) -> None:
        pass

    @abstractmethod
    async def update(self, name: str, task: Task) -> None:
        pass

    @abstractmethod
    async def delete(self, name: str) -> None:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    async def pause(self, name: str) -> None:
        task = await self.get(name)
        task.pause()
        await self.update(name, task)

    async def resume(self, name: str) -> None:
        task = await self.get(name)
        task.resume()
        await self.update(name, task)
