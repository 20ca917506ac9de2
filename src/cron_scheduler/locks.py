"""
Non-blocking locks used to keep single-run tasks and due-task computation exclusive.

``acquire`` never waits: it returns False when the key is already held, and the
caller skips the guarded work.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Set

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.sqlalchemy import Base, LockModel, backend_errors

logger = logging.getLogger(__name__)


class LockStore(Protocol):
    async def acquire(self, key: str) -> bool:
        ...

    async def release(self, key: str) -> None:
        ...


class InMemoryLockStore:
    """
    Locks shared by the workers of a single process.
    """

    def __init__(self) -> None:
        self._keys: Set[str] = set()

    async def acquire(self, key: str) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    async def release(self, key: str) -> None:
        self._keys.discard(key)

    def is_acquired(self, key: str) -> bool:
        return key in self._keys


class SqlAlchemyLockStore:
    """
    Locks shared by every process using the same database: a lock is a row of
    the ``_scheduler_locks`` table and the primary key makes the insert exclusive.

    With ``timeout`` set, a lock older than ``timeout`` seconds is considered
    abandoned and is taken over.
    """

    def __init__(self, engine: AsyncEngine, timeout: Optional[float] = None):
        self.engine = engine
        self.timeout = timeout
        self.async_session = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self._initialised = False

    async def _setup(self) -> None:
        if self._initialised:
            return
        with backend_errors("create the lock table"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all, tables=[LockModel.__table__])
        self._initialised = True

    async def acquire(self, key: str) -> bool:
        await self._setup()
        now = datetime.now(timezone.utc)
        try:
            with backend_errors(f"acquire the lock '{key}'"):
                async with self.async_session() as session:
                    async with session.begin():
                        if self.timeout is not None:
                            await session.execute(
                                delete(LockModel).where(
                                    LockModel.key == key,
                                    LockModel.acquired_at < now - timedelta(seconds=self.timeout),
                                )
                            )
                        session.add(LockModel(key=key, acquired_at=now))
        except TransportError as e:
            if isinstance(e.__cause__, IntegrityError):
                logger.debug("Lock '%s' is already held", key)
                return False
            raise
        return True

    async def release(self, key: str) -> None:
        await self._setup()
        with backend_errors(f"release the lock '{key}'"):
            async with self.async_session() as session:
                async with session.begin():
                    await session.execute(delete(LockModel).where(LockModel.key == key))
