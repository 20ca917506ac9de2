from typing import List, Protocol

from cron_scheduler.domain.task import Task


class SchedulePolicy(Protocol):
    """
    Protocol class for schedule policies.
    """

    def support(self, policy: str) -> bool:
        """
        Return True if this policy is registered under the given name.
        """
        ...

    def sort(self, tasks: List[Task]) -> List[Task]:
        """
        Return the tasks in execution order. Tasks comparing equal keep their relative order.
        """
        ...
