"""
Built-in schedule policies. Every policy relies on ``sorted`` being stable, so tasks
with equal keys are dispatched in the order they came in.
"""
from datetime import datetime, timezone
from typing import ClassVar, List, Tuple

from cron_scheduler.domain.task import Task

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)
_FAR_PAST = datetime.min.replace(tzinfo=timezone.utc)


class NamedPolicy:
    name: ClassVar[str]
    aliases: ClassVar[Tuple[str, ...]] = ()

    def support(self, policy: str) -> bool:
        return policy == self.name or policy in self.aliases


class FirstInFirstOutPolicy(NamedPolicy):
    name = "first_in_first_out"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.scheduled_at or _FAR_FUTURE)


class FirstInLastOutPolicy(NamedPolicy):
    name = "first_in_last_out"
    aliases = ("last_in_first_out",)

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.scheduled_at or _FAR_PAST, reverse=True)


class MemoryUsagePolicy(NamedPolicy):
    """
    Most memory hungry tasks first, tasks without measurement last.
    """
    name = "memory_usage"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(
            tasks,
            key=lambda task: task.execution_memory_usage if task.execution_memory_usage is not None else -1,
            reverse=True,
        )


class ExecutionDurationPolicy(NamedPolicy):
    """
    Shortest tasks first; tasks never measured are considered instant.
    """
    name = "execution_duration"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.execution_computation_time or 0.0)


class DeadlinePolicy(NamedPolicy):
    name = "deadline"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.execution_absolute_deadline or _FAR_FUTURE)


class NicePolicy(NamedPolicy):
    name = "nice"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: task.nice if task.nice is not None else 0)


class IdlePolicy(NamedPolicy):
    """
    Tasks in the idle class (priority <= -20) run after every other task,
    otherwise higher priorities first.
    """
    name = "idle"
    IDLE_PRIORITY: ClassVar[int] = -20

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: (task.priority <= self.IDLE_PRIORITY, -task.priority))


class BatchPolicy(NamedPolicy):
    """
    Higher priorities first. Tasks are left untouched: the sorted tasks are the
    ones the worker runs and stores back.
    """
    name = "batch"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: -task.priority)


class RoundRobinPolicy(NamedPolicy):
    """
    Tasks that fit their time slice (last duration within ``max_duration``) first.
    """
    name = "round_robin"

    def sort(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda task: not self._fits(task))

    @staticmethod
    def _fits(task: Task) -> bool:
        if task.max_duration is None or task.execution_computation_time is None:
            return True
        return task.execution_computation_time <= task.max_duration * 1000


def default_policies() -> List[NamedPolicy]:
    return [
        FirstInFirstOutPolicy(),
        FirstInLastOutPolicy(),
        MemoryUsagePolicy(),
        ExecutionDurationPolicy(),
        DeadlinePolicy(),
        NicePolicy(),
        IdlePolicy(),
        BatchPolicy(),
        RoundRobinPolicy(),
    ]
