import inspect
import logging

from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import CallbackTask, ExecutionState, Task
from cron_scheduler.runners.protocol import errored, succeed

logger = logging.getLogger(__name__)


class CallbackTaskRunner:
    """
    Calls the task callback with its arguments. Coroutine functions are awaited.
    """

    def support(self, task: Task) -> bool:
        return isinstance(task, CallbackTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING

        try:
            callback = task.resolve_callback()
        except (ImportError, AttributeError) as e:
            return errored(task, f"The callback '{task.callback}' cannot be resolved: {e}")

        try:
            result = callback(*task.arguments)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.debug("Callback of task '%s' raised", task.name, exc_info=True)
            return errored(task, str(e) or type(e).__name__)

        return succeed(task, None if result is None else str(result))
