import pytest
from aioresponses import aioresponses

from cron_scheduler.domain.task import ExecutionState, HttpTask, NullTask
from cron_scheduler.runners.http import HttpTaskRunner


@pytest.fixture(scope="function")
def http_runner():
    return HttpTaskRunner()


@pytest.fixture(scope="function")
def http_task():
    return HttpTask(
        name="health",
        url="https://example.com/health",
        client_options={"headers": {"Accept": "text/plain"}, "params": {"key": "value"}, "timeout": 5},
        output=True,
    )


def test_support(http_runner, http_task):
    assert http_runner.support(http_task)
    assert not http_runner.support(NullTask(name="foo"))


@pytest.mark.asyncio
async def test_success(http_runner, http_task):
    with aioresponses() as m:
        m.get("https://example.com/health?key=value", status=200, body="ok")

        output = await http_runner.run(http_task)

    assert output.is_success
    assert output.output == "ok"
    assert http_task.execution_state == ExecutionState.SUCCEED


@pytest.mark.asyncio
async def test_post_with_json(http_runner):
    task = HttpTask(name="hook", url="https://example.com/hook", method="post", client_options={"json": {"a": 1}})

    with aioresponses() as m:
        m.post("https://example.com/hook", status=201, body="created")

        output = await http_runner.run(task)

        assert len(m.requests) == 1
    assert output.is_success
    assert output.output is None


@pytest.mark.asyncio
async def test_error_status(http_runner, http_task):
    with aioresponses() as m:
        m.get("https://example.com/health?key=value", status=503, body="maintenance")

        output = await http_runner.run(http_task)

    assert not output.is_success
    assert output.output == "HTTP 503: maintenance"
    assert http_task.execution_state == ExecutionState.ERRORED


@pytest.mark.asyncio
async def test_connection_error(http_runner, http_task):
    with aioresponses():
        output = await http_runner.run(http_task)

    assert not output.is_success
    assert output.output.startswith("Request failed")
    assert http_task.execution_state == ExecutionState.ERRORED
