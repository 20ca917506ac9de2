import logging
import math
from typing import Any, List, Tuple

from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.base import BaseTransport
from cron_scheduler.transports.composite import CompositeTransport
from cron_scheduler.transports.result import Operation, Success, attempt

logger = logging.getLogger(__name__)


class LongTailTransport(CompositeTransport):
    """
    Sends every operation to the backing transport holding the fewest tasks.

    The task count of every backing transport is read through ``list()`` before
    each call. There is no fallback: if the lightest transport fails, the call fails.
    """

    async def _ranked(self) -> List[BaseTransport]:
        ranks: List[Tuple[float, BaseTransport]] = []
        for transport in self._transports:
            result = await attempt(transport, lambda t: t.list())
            # A transport unable to report its load goes last.
            ranks.append((len(result.value) if isinstance(result, Success) else math.inf, transport))
        return [transport for _, transport in sorted(ranks, key=lambda rank: rank[0])]

    async def _execute(self, operation: Operation) -> Any:
        self._ensure_transports()

        transport = (await self._ranked())[0]
        result = await attempt(transport, operation)
        if isinstance(result, Success):
            return result.value

        logger.error("Transport %s failed (%s)", type(transport).__name__, result.error)
        raise TransportError("The transport failed to execute the requested action") from result.error
