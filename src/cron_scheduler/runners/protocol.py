from typing import Optional, Protocol

from cron_scheduler.domain.output import Output, OutputType
from cron_scheduler.domain.task import ExecutionState, Task


class TaskRunner(Protocol):
    """
    Protocol class for task runners.

    ``run`` sets the task execution state to RUNNING before doing any work and to a
    terminal state before returning, including when the work fails.
    """

    def support(self, task: Task) -> bool:
        """
        Return True if this runner can execute the given task.
        """
        ...

    async def run(self, task: Task) -> Output:
        """
        Execute the given task.

        Args:
            task (Task): The task to be executed.

        Returns:
            Output: The result of the execution, typed ERROR when the task failed.
        """
        ...


def succeed(task: Task, output: Optional[str] = None) -> Output:
    task.execution_state = ExecutionState.SUCCEED
    return Output(task=task, output=output if task.output else None)


def errored(task: Task, output: Optional[str] = None) -> Output:
    task.execution_state = ExecutionState.ERRORED
    return Output(task=task, output=output, type=OutputType.ERROR)
