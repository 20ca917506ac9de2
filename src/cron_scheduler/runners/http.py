import asyncio
from typing import Any, Dict

import aiohttp

from cron_scheduler.domain.output import Output
from cron_scheduler.domain.task import ExecutionState, HttpTask, Task
from cron_scheduler.runners.protocol import errored, succeed


def _request_options(client_options: Dict[str, Any]) -> Dict[str, Any]:
    options = dict(client_options)
    if isinstance(options.get("timeout"), (int, float)):
        options["timeout"] = aiohttp.ClientTimeout(total=options["timeout"])
    if isinstance(options.get("auth"), (list, tuple)):
        options["auth"] = aiohttp.BasicAuth(*options["auth"])
    return options


class HttpTaskRunner:
    """
    Task runner making HTTP requests using aiohttp.

    Responses with a status code of 400 or more are errors, their body is the output.
    """

    def support(self, task: Task) -> bool:
        return isinstance(task, HttpTask)

    async def run(self, task: Task) -> Output:
        task.execution_state = ExecutionState.RUNNING

        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method=task.method,
                    url=task.url,
                    **_request_options(task.client_options),
                ) as response:
                    body = await response.text()
                    if response.status >= 400:
                        return errored(task, f"HTTP {response.status}: {body}")
                    return succeed(task, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return errored(task, f"Request failed: {str(e) or type(e).__name__}")
