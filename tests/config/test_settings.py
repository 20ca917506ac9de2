from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from cron_scheduler.app import build_scheduler, build_worker, worker_options
from cron_scheduler.config import SchedulerSettings
from cron_scheduler.domain.task import NullTask
from cron_scheduler.locks import SqlAlchemyLockStore
from cron_scheduler.transports.in_memory import InMemoryTransport
from cron_scheduler.transports.failover import FailoverTransport


def test_defaults(monkeypatch):
    monkeypatch.delenv("CRON_SCHEDULER_TIMEZONE", raising=False)
    settings = SchedulerSettings(_env_file=None)

    assert settings.timezone == "UTC"
    assert settings.transport_dsn == "memory://first_in_first_out"
    assert settings.policy == "first_in_first_out"
    assert settings.sleep_duration_delay == 1


def test_environment(monkeypatch):
    monkeypatch.setenv("CRON_SCHEDULER_TIMEZONE", "Europe/Paris")
    monkeypatch.setenv("CRON_SCHEDULER_TASK_LIMIT", "10")
    monkeypatch.setenv("CRON_SCHEDULER_LOG_LEVEL", "debug")

    settings = SchedulerSettings(_env_file=None)

    assert settings.timezone == "Europe/Paris"
    assert settings.task_limit == 10
    assert settings.log_level == "DEBUG"


def test_local_timezone():
    settings = SchedulerSettings(_env_file=None, timezone="local")

    assert ZoneInfo(settings.timezone)


@pytest.mark.parametrize("values", [{"timezone": "Nowhere/Land"}, {"log_level": "LOUD"}, {"task_limit": 0}])
def test_invalid_settings(values):
    with pytest.raises(ValidationError):
        SchedulerSettings(_env_file=None, **values)


@pytest.mark.asyncio
async def test_build_scheduler_and_worker():
    settings = SchedulerSettings(_env_file=None, transport_dsn="failover://(memory://nice && memory://batch)", task_limit=1, sleep_duration_delay=0)
    scheduler = build_scheduler(settings)
    worker = build_worker(scheduler, settings=settings)

    await scheduler.schedule(NullTask(name="foo"))
    await worker.execute(worker_options(settings))

    assert isinstance(scheduler.transport, FailoverTransport)
    assert worker.get_last_executed_task().name == "foo"


@pytest.mark.asyncio
async def test_sqlalchemy_workers_share_database_locks():
    settings = SchedulerSettings(_env_file=None, transport_dsn="sqlalchemy://sqlite+aiosqlite:///:memory:")
    scheduler = build_scheduler(settings)
    worker = build_worker(scheduler, settings=settings)

    await scheduler.schedule(NullTask(name="once", single_run=True))
    await worker.execute(worker_options(settings), await scheduler.transport.get("once"))

    assert isinstance(worker._lock_store, SqlAlchemyLockStore)
    assert len(await scheduler.get_tasks()) == 0
    assert isinstance(build_scheduler(SchedulerSettings(_env_file=None)).transport, InMemoryTransport)
    await scheduler.transport.close()
