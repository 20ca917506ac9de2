"""
Outcome of a call made by a composite transport on one of its backing transports.
Composite strategies branch on these values instead of on exceptions.

NotFoundError and ConflictError are answers from a healthy backend, not
failures of it: they are raised as is and never become a Failure.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from cron_scheduler.exceptions import ConflictError, NotFoundError
from cron_scheduler.transports.base import BaseTransport

T = TypeVar("T")

DOMAIN_ERRORS = (NotFoundError, ConflictError)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    error: Exception


Result = Union[Success[T], Failure]
Operation = Callable[[BaseTransport], Awaitable[Any]]


async def attempt(transport: BaseTransport, operation: Operation) -> Result[Any]:
    try:
        return Success(await operation(transport))
    except DOMAIN_ERRORS:
        raise
    except Exception as e:
        return Failure(e)
