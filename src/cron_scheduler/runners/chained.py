import logging
from typing import TYPE_CHECKING, List

from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import ChainedTask, ExecutionState, Task
from cron_scheduler.exceptions import UndefinedRunnerError
from cron_scheduler.runners.protocol import errored, succeed

if TYPE_CHECKING:
    from cron_scheduler.runner_registry import RunnerRegistry

logger = logging.getLogger(__name__)


class ChainedTaskRunner:
    """
    Runs the tasks of a chain one after the other with the runners of ``registry``.
    The chain stops and errors at the first failing task.
    """

    def __init__(self, registry: "RunnerRegistry"):
        self._registry = registry

    def support(self, task: Task) -> bool:
        return isinstance(task, ChainedTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING

        outputs: List[str] = []
        for sub_task in task.tasks:
            try:
                runner = self._registry.find(sub_task)
            except UndefinedRunnerError as e:
                return errored(task, str(e))

            output = await runner.run(sub_task)
            if not output.is_success:
                logger.info("Chain '%s' stopped at task '%s'", task.name, sub_task.name)
                return errored(task, f"The task '{sub_task.name}' failed: {output.output}")
            if output.output:
                outputs.append(output.output)

        return succeed(task, "\n".join(outputs) or None)
