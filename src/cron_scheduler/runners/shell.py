import asyncio
import logging
import os
from typing import Dict, List, Optional, Set, Tuple

from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import ExecutionState, ShellTask, Task
from cron_scheduler.runners.protocol import errored, succeed

logger = logging.getLogger(__name__)

BACKGROUND_OUTPUT = "Task is running in background, output is not available"


class ProcessTimeout(Exception):
    pass


async def run_process(
    args: List[str],
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """
    Run a process to completion and return its exit code, stdout and stderr.

    The process is killed when it runs longer than ``timeout`` seconds.

    Raises:
        OSError: If the program cannot be started.
        ProcessTimeout: If the timeout is exceeded.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env={**os.environ, **(env or {})},
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ProcessTimeout(f"The process exceeded the timeout of {timeout} seconds")
    return process.returncode, stdout.decode(errors="replace").strip(), stderr.decode(errors="replace").strip()


class ShellTaskRunner:
    """
    Runs shell tasks in a subprocess.

    Background tasks are started and left running; they end in the INCOMPLETE
    execution state since their outcome is never known.
    """

    def __init__(self) -> None:
        self._background: Set["asyncio.Task[int]"] = set()

    def support(self, task: Task) -> bool:
        return isinstance(task, ShellTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING

        if task.background:
            return await self._run_in_background(task)

        try:
            code, stdout, stderr = await run_process(
                task.command, cwd=task.cwd, env=task.environment_variables, timeout=task.timeout
            )
        except (OSError, ProcessTimeout) as e:
            return errored(task, str(e))

        if code != 0:
            return errored(task, stderr or f"The process exited with code {code}")

        return succeed(task, stdout)

    async def _run_in_background(self, task: ShellTask) -> Output:
        try:
            process = await asyncio.create_subprocess_exec(
                *task.command,
                cwd=task.cwd,
                env={**os.environ, **task.environment_variables},
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            return errored(task, str(e))

        waiter = asyncio.ensure_future(process.wait())
        self._background.add(waiter)
        waiter.add_done_callback(self._background.discard)
        logger.info("Task '%s' started in background (pid %s)", task.name, process.pid)

        task.execution_state = ExecutionState.INCOMPLETE
        return Output(task=task, output=BACKGROUND_OUTPUT)
