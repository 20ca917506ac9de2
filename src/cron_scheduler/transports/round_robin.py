import logging
from typing import Any, Dict, Iterable, Optional, Set

from cron_scheduler.exceptions import ConfigurationError, NotFoundError, TransportError
from cron_scheduler.transports.base import BaseTransport
from cron_scheduler.transports.composite import ALL_FAILED, CompositeTransport
from cron_scheduler.transports.result import Failure, Operation, Success, attempt

logger = logging.getLogger(__name__)


class RoundRobinTransport(CompositeTransport):
    """
    Spreads the operations over the backing transports in turn.

    Each call starts with a fresh round: every transport tried during the call is
    put to sleep whatever its outcome, and the call fails once all of them sleep.
    The position of the next transport to visit survives between calls, so two
    consecutive successful calls land on two different transports.

    Tasks are spread over the transports, so a transport not holding the task is
    a miss and the round goes on. NotFoundError is raised once every transport
    missed.

    The ``quantum`` option is kept for per-transport call budgets; one call is
    made per visit.
    """

    def __init__(self, transports: Iterable[BaseTransport], options: Optional[Dict[str, Any]] = None):
        options = {"quantum": 2, **(options or {})}
        try:
            options["quantum"] = int(options["quantum"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"The quantum option must be an integer, got '{options['quantum']}'") from e
        super().__init__(transports, options)
        self._cursor = 0

    async def _execute(self, operation: Operation) -> Any:
        self._ensure_transports()

        sleeping: Set[int] = set()
        last_failure: Optional[Failure] = None
        last_miss: Optional[NotFoundError] = None
        while len(sleeping) != len(self._transports):
            index = self._cursor % len(self._transports)
            self._cursor = index + 1
            sleeping.add(index)

            transport = self._transports[index]
            try:
                result = await attempt(transport, operation)
            except NotFoundError as e:
                last_miss = e
                continue
            if isinstance(result, Success):
                return result.value

            logger.warning("Transport %s failed (%s)", type(transport).__name__, result.error)
            last_failure = result

        if last_failure is None and last_miss is not None:
            raise last_miss
        raise TransportError(ALL_FAILED) from (last_failure.error if last_failure else None)
