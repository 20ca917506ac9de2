from typing import Iterable, Iterator, List, Optional

from cron_scheduler.domain.task import Task
from cron_scheduler.exceptions import UndefinedRunnerError
from cron_scheduler.runners.callback import CallbackTaskRunner
from cron_scheduler.runners.chained import ChainedTaskRunner
from cron_scheduler.runners.command import CommandTaskRunner
from cron_scheduler.runners.http import HttpTaskRunner
from cron_scheduler.runners.null import NullTaskRunner
from cron_scheduler.runners.protocol import TaskRunner
from cron_scheduler.runners.shell import ShellTaskRunner


class RunnerRegistry:
    """
    Ordered collection of task runners.

    Lookup is first-match: the first registered runner supporting a task runs it,
    even if a later one would support it too.
    """

    def __init__(self, runners: Optional[Iterable[TaskRunner]] = None):
        self._runners: List[TaskRunner] = list(runners or [])

    @classmethod
    def with_defaults(cls) -> "RunnerRegistry":
        registry = cls()
        for runner in (
            ShellTaskRunner(),
            HttpTaskRunner(),
            CallbackTaskRunner(),
            CommandTaskRunner(),
            NullTaskRunner(),
            ChainedTaskRunner(registry),
        ):
            registry.register(runner)
        return registry

    def register(self, runner: TaskRunner) -> None:
        self._runners.append(runner)

    def find(self, task: Task) -> TaskRunner:
        """
        Get the first runner supporting the task.

        Raises:
            UndefinedRunnerError: If no registered runner supports the task.
        """
        for runner in self._runners:
            if runner.support(task):
                return runner
        raise UndefinedRunnerError(f"No runner found for the task '{task.name}' of kind '{task.kind.value}'")

    def __len__(self) -> int:
        return len(self._runners)

    def __iter__(self) -> Iterator[TaskRunner]:
        return iter(self._runners)
