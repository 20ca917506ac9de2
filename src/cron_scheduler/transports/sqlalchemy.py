import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, Integer, String, Text, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from cron_scheduler.domain.serialization import deserialize_task, serialize_task
from cron_scheduler.domain.task import Task
from cron_scheduler.domain.task_list import TaskList
from cron_scheduler.exceptions import ConflictError, NotFoundError, TransportError
from cron_scheduler.transports.base import BaseTransport

logger = logging.getLogger(__name__)

Base = declarative_base()


class TaskModel(Base):
    __tablename__ = '_scheduler_tasks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_name = Column(String, nullable=False, unique=True, index=True)
    body = Column(Text, nullable=False)


class LockModel(Base):
    __tablename__ = '_scheduler_locks'

    key = Column(String, primary_key=True)
    acquired_at = Column(DateTime(timezone=True), nullable=False)


@contextmanager
def backend_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, ValidationError) as e:
        raise TransportError(f"Could not {action}: {e}") from e


class SqlAlchemyTransport(BaseTransport):
    """
    Stores tasks as JSON documents in a relational database through async SQLAlchemy.

    Every write runs in a transaction; the existence check and the insert of
    ``create`` are part of the same one, guarded by row locks on backends that
    support ``SELECT ... FOR UPDATE``.
    """

    def __init__(self, db_url: str, options: Optional[Dict[str, Any]] = None, **engine_options: Any):
        super().__init__({"auto_setup": True, **(options or {})})
        self.engine = create_async_engine(db_url, **engine_options)
        self.async_session = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self._initialised = False

    async def create_tables(self) -> None:
        with backend_errors("create the tables"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        self._initialised = True

    async def _setup(self) -> None:
        if not self._initialised and self._options["auto_setup"]:
            await self.create_tables()

    async def list(self) -> TaskList[Task]:
        await self._setup()
        with backend_errors("list the tasks"):
            async with self.async_session() as session:
                result = await session.execute(select(TaskModel).order_by(TaskModel.task_name))
                return TaskList(deserialize_task(db_task.body) for db_task in result.scalars())

    async def get(self, name: str) -> Task:
        await self._setup()
        with backend_errors(f"get the task '{name}'"):
            async with self.async_session() as session:
                result = await session.execute(select(TaskModel).filter_by(task_name=name))
                db_task = result.scalar_one_or_none()
                if db_task is None:
                    raise NotFoundError(f"The task '{name}' does not exist")
                return deserialize_task(db_task.body)

    async def create(self, task: Task) -> None:
        await self._setup()
        try:
            with backend_errors(f"create the task '{task.name}'"):
                async with self.async_session() as session:
                    async with session.begin():
                        existing = await session.execute(
                            select(TaskModel.id).filter_by(task_name=task.name).with_for_update()
                        )
                        if existing.first() is not None:
                            raise ConflictError(f"The task '{task.name}' has already been scheduled")
                        session.add(TaskModel(task_name=task.name, body=serialize_task(task)))
        except TransportError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError(f"The task '{task.name}' has already been scheduled") from e.__cause__
            raise
        logger.debug("Stored task '%s'", task.name)

    async def update(self, name: str, task: Task) -> None:
        await self._setup()
        try:
            with backend_errors(f"update the task '{name}'"):
                async with self.async_session() as session:
                    async with session.begin():
                        result = await session.execute(
                            select(TaskModel).filter_by(task_name=name).with_for_update()
                        )
                        db_task = result.scalar_one_or_none()
                        if db_task is None:
                            raise NotFoundError(f"The task '{name}' does not exist")
                        db_task.task_name = task.name
                        db_task.body = serialize_task(task)
        except TransportError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError(f"The task '{task.name}' has already been scheduled") from e.__cause__
            raise

    async def delete(self, name: str) -> None:
        await self._setup()
        with backend_errors(f"delete the task '{name}'"):
            async with self.async_session() as session:
                async with session.begin():
                    result = await session.execute(delete(TaskModel).where(TaskModel.task_name == name))
                    if result.rowcount != 1:
                        raise NotFoundError(f"The task '{name}' does not exist")

    async def clear(self) -> None:
        await self._setup()
        with backend_errors("clear the tasks"):
            async with self.async_session() as session:
                async with session.begin():
                    await session.execute(delete(TaskModel))

    async def close(self) -> None:
        await self.engine.dispose()


class InMemorySqlAlchemyTransport(SqlAlchemyTransport):
    def __init__(self, options: Optional[Dict[str, Any]] = None):
        # One shared connection, otherwise every session sees its own empty database.
        super().__init__("sqlite+aiosqlite:///:memory:", options, poolclass=StaticPool)
