from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, Protocol, TypeVar, Union, overload

from cron_scheduler.exceptions import ConflictError


class Named(Protocol):
    @property
    def name(self) -> str: ...


T = TypeVar("T", bound=Named)


class TaskList(Generic[T]):
    """
    Ordered collection of tasks keyed by their name.

    Iteration follows insertion order. ``filter`` narrows the list in place and returns
    it, so take a copy first if the original content is still needed.
    """

    def __init__(self, tasks: Optional[Iterable[T]] = None):
        self._tasks: Dict[str, T] = {}
        if tasks:
            self.add(*tasks)

    def add(self, *tasks: T) -> None:
        """
        Add tasks using their name as key.

        Raises:
            ConflictError: If a task with the same name is already in the list. Tasks
                given before the duplicate are kept; the caller decides what to do with them.
        """
        for task in tasks:
            if task.name in self._tasks:
                raise ConflictError(f"The task '{task.name}' is already in the list")
            self._tasks[task.name] = task

    def has(self, name: str) -> bool:
        return name in self._tasks

    def get(self, name: str) -> Optional[T]:
        return self._tasks.get(name)

    def find_by_name(self, names: Iterable[str]) -> "TaskList[T]":
        return TaskList(self._tasks[name] for name in names if name in self._tasks)

    def filter(self, predicate: Callable[[T], bool]) -> "TaskList[T]":
        self._tasks = {name: task for name, task in self._tasks.items() if predicate(task)}
        return self

    def remove(self, name: str) -> None:
        self._tasks.pop(name, None)

    def count(self) -> int:
        return len(self._tasks)

    def copy(self) -> "TaskList[T]":
        return TaskList(self._tasks.values())

    def to_dict(self) -> Dict[str, T]:
        return dict(self._tasks)

    def to_list(self) -> List[T]:
        return list(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._tasks.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    @overload
    def __getitem__(self, key: int) -> T: ...

    @overload
    def __getitem__(self, key: str) -> T: ...

    def __getitem__(self, key: Union[int, str]) -> T:
        if isinstance(key, int):
            return self.to_list()[key]
        return self._tasks[key]

    def __bool__(self) -> bool:
        return bool(self._tasks)

    def __repr__(self) -> str:
        return f"TaskList({list(self._tasks)!r})"
