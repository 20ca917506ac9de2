from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import ExecutionState, NullTask, Task
from cron_scheduler.runners.protocol import succeed


class NullTaskRunner:
    def support(self, task: Task) -> bool:
        return isinstance(task, NullTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING
        return succeed(task)
