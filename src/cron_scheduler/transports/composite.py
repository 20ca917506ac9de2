from abc import abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.base import BaseTransport
from cron_scheduler.transports.result import Operation

NO_TRANSPORT = "No transport found"
ALL_FAILED = "All the transports failed to execute the requested action"


class CompositeTransport(BaseTransport):
    """
    A transport delegating every operation to one or more backing transports.

    Subclasses decide which backing transport handles a call in ``_execute``.
    """

    def __init__(self, transports: Iterable[BaseTransport], options: Optional[Dict[str, Any]] = None):
        super().__init__(options)
        self._transports: List[BaseTransport] = list(transports)

    @property
    def transports(self) -> List[BaseTransport]:
        return list(self._transports)

    def _ensure_transports(self) -> None:
        if not self._transports:
            raise TransportError(NO_TRANSPORT)

    @abstractmethod
    async def _execute(self, operation: Operation) -> Any:
        pass

    async def list(self) -> TaskList[Task]:
        return await self._execute(lambda transport: transport.list())

    async def get(self, name: str) -> Task:
        return await self._execute(lambda transport: transport.get(name))

    async def create(self, task: Task) -> None:
        await self._execute(lambda transport: transport.create(task))

    async def update(self, name: str, task: Task) -> None:
        await self._execute(lambda transport: transport.update(name, task))

    async def delete(self, name: str) -> None:
        await self._execute(lambda transport: transport.delete(name))

    async def pause(self, name: str) -> None:
        await self._execute(lambda transport: transport.pause(name))

    async def resume(self, name: str) -> None:
        await self._execute(lambda transport: transport.resume(name))

    async def clear(self) -> None:
        await self._execute(lambda transport: transport.clear())
