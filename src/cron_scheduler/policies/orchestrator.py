import logging
from typing import Iterable, List, Optional

from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.exceptions import ConfigurationError
from cron_scheduler.policies.base import SchedulePolicy
from cron_scheduler.policies.builtin import default_policies

logger = logging.getLogger(__name__)


class SchedulePolicyOrchestrator:
    """
    Applies a named schedule policy to a set of tasks.

    Policies are searched in registration order and the first one supporting the
    requested name wins.
    """

    def __init__(self, policies: Optional[Iterable[SchedulePolicy]] = None):
        self._policies: List[SchedulePolicy] = list(policies) if policies is not None else default_policies()

    def register(self, policy: SchedulePolicy) -> None:
        self._policies.append(policy)

    def sort(self, policy: str, tasks: TaskList[Task]) -> TaskList[Task]:
        """
        Sort the tasks with the policy registered under ``policy``.

        Raises:
            ConfigurationError: If no policy supports the name, even for an empty list.
        """
        for candidate in self._policies:
            if candidate.support(policy):
                if not tasks:
                    return TaskList()
                return TaskList(candidate.sort(tasks.to_list()))

        raise ConfigurationError(f"The policy '{policy}' cannot be found")
