import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.base import BaseTransport
from cron_scheduler.transports.composite import ALL_FAILED, CompositeTransport
from cron_scheduler.transports.result import Failure, Operation, Success, attempt

logger = logging.getLogger(__name__)


class FailoverTransport(CompositeTransport):
    """
    Sends every operation to the first backing transport that has not failed yet.

    A backing transport that fails once is skipped for the rest of the life of
    this instance; there is no recovery probing.
    """

    def __init__(self, transports: Iterable[BaseTransport], options: Optional[Dict[str, Any]] = None):
        super().__init__(transports, {"mode": "normal", **(options or {})})
        # Positions in self._transports, so the same backend given twice fails independently.
        self._failed: Set[int] = set()

    @property
    def failed_transports(self) -> List[BaseTransport]:
        return [t for index, t in enumerate(self._transports) if index in self._failed]

    async def _execute(self, operation: Operation) -> Any:
        self._ensure_transports()

        last_failure: Optional[Failure] = None
        for index, transport in enumerate(self._transports):
            if index in self._failed:
                continue

            result = await attempt(transport, operation)
            if isinstance(result, Success):
                return result.value

            logger.warning(
                "Transport %s failed (%s), switching to the next one", type(transport).__name__, result.error
            )
            self._failed.add(index)
            last_failure = result

        raise TransportError(ALL_FAILED) from (last_failure.error if last_failure else None)
