import sys

from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import CommandTask, ExecutionState, Task
from cron_scheduler.runners.protocol import errored, succeed
from cron_scheduler.runners.shell import ProcessTimeout, run_process


class CommandTaskRunner:
    """
    Runs command tasks as ``python -m <command>`` with the current interpreter.
    """

    def support(self, task: Task) -> bool:
        return isinstance(task, CommandTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING

        try:
            code, stdout, stderr = await run_process([sys.executable, "-m", task.command, *task.build_arguments()])
        except (OSError, ProcessTimeout) as e:
            return errored(task, str(e))

        if code != 0:
            return errored(task, stderr or f"The command '{task.command}' exited with code {code}")

        return succeed(task, stdout)
