"""
Assembles a scheduler and a worker from SchedulerSettings.

    scheduler = build_scheduler()
    worker = build_worker(scheduler)
    await worker.execute(worker_options())
"""
from typing import Iterable, Optional

from cron_scheduler.config import SchedulerSettings, settings as default_settings
from cron_scheduler.events import EventDispatcher
from cron_scheduler.locks import LockStore, SqlAlchemyLockStore
from cron_scheduler.messaging import TaskDispatcher
from cron_scheduler.policies.orchestrator import SchedulePolicyOrchestrator
from cron_scheduler.runner_registry import RunnerRegistry
from cron_scheduler.runners.protocol import TaskRunner
from cron_scheduler.scheduler import Scheduler
from cron_scheduler.transports.factory import TransportFactoryChain
from cron_scheduler.transports.sqlalchemy import SqlAlchemyTransport
from cron_scheduler.worker import Worker, WorkerOptions


def build_scheduler(
    settings: Optional[SchedulerSettings] = None,
    event_dispatcher: Optional[EventDispatcher] = None,
    dispatcher: Optional[TaskDispatcher] = None,
    orchestrator: Optional[SchedulePolicyOrchestrator] = None,
) -> Scheduler:
    settings = settings or default_settings
    orchestrator = orchestrator or SchedulePolicyOrchestrator()
    transport = TransportFactoryChain(orchestrator=orchestrator).create(settings.transport_dsn)
    return Scheduler(
        settings.timezone,
        transport,
        event_dispatcher=event_dispatcher,
        dispatcher=dispatcher,
        orchestrator=orchestrator,
        policy=settings.policy,
    )


def build_worker(
    scheduler: Scheduler,
    runners: Optional[Iterable[TaskRunner]] = None,
    lock_store: Optional[LockStore] = None,
    settings: Optional[SchedulerSettings] = None,
) -> Worker:
    """
    Build a worker running the default runners, or ``runners`` when given.

    Without a lock store, a scheduler backed by a SqlAlchemyTransport gets locks
    in the same database, so that workers of different processes exclude each other.
    """
    settings = settings or default_settings
    if lock_store is None and isinstance(scheduler.transport, SqlAlchemyTransport):
        lock_store = SqlAlchemyLockStore(scheduler.transport.engine, timeout=settings.lock_timeout)
    registry = RunnerRegistry(runners) if runners is not None else RunnerRegistry.with_defaults()
    return Worker(scheduler, registry, lock_store=lock_store)


def worker_options(settings: Optional[SchedulerSettings] = None) -> WorkerOptions:
    settings = settings or default_settings
    return WorkerOptions(
        sleep_duration_delay=settings.sleep_duration_delay,
        task_limit=settings.task_limit,
        time_limit=settings.time_limit,
    )
