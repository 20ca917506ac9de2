"""
Builds transports from connection strings.

Factories are asked in registration order and the first one supporting the DSN
creates the transport. Composite factories build their members through the same
chain, so groups can be nested::

    failover://(sqlalchemy://postgresql+asyncpg://db/scheduler && memory://first_in_first_out)
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, Type

from cron_scheduler.exceptions import ConfigurationError
from cron_scheduler.policies.orchestrator import SchedulePolicyOrchestrator
from cron_scheduler.transports.base import BaseTransport
from cron_scheduler.transports.composite import CompositeTransport
from cron_scheduler.transports.dsn import Dsn
from cron_scheduler.transports.failover import FailoverTransport
from cron_scheduler.transports.in_memory import InMemoryTransport
from cron_scheduler.transports.long_tail import LongTailTransport
from cron_scheduler.transports.round_robin import RoundRobinTransport
from cron_scheduler.transports.sqlalchemy import SqlAlchemyTransport

logger = logging.getLogger(__name__)


class TransportFactory(Protocol):
    def support(self, dsn: str) -> bool:
        ...

    def create_transport(self, dsn: Dsn, options: Dict[str, Any], chain: "TransportFactoryChain") -> BaseTransport:
        ...


class InMemoryTransportFactory:
    def support(self, dsn: str) -> bool:
        return dsn.startswith("memory://")

    def create_transport(self, dsn: Dsn, options: Dict[str, Any], chain: "TransportFactoryChain") -> BaseTransport:
        return InMemoryTransport(
            {"execution_mode": dsn.host or "first_in_first_out", **dsn.options, **options},
            orchestrator=chain.orchestrator,
        )


class SqlAlchemyTransportFactory:
    """
    ``sqlalchemy://<database url>``; the database URL is passed untouched to SQLAlchemy.
    """

    def support(self, dsn: str) -> bool:
        return dsn.startswith("sqlalchemy://")

    def create_transport(self, dsn: Dsn, options: Dict[str, Any], chain: "TransportFactoryChain") -> BaseTransport:
        if not dsn.rest:
            raise ConfigurationError("The sqlalchemy DSN must contain a database URL")
        return SqlAlchemyTransport(dsn.rest, options)


class CompositeTransportFactory:
    def __init__(self, schemes: Tuple[str, ...], transport_class: Type[CompositeTransport]):
        self._schemes = schemes
        self._transport_class = transport_class

    def support(self, dsn: str) -> bool:
        return any(dsn.startswith(f"{scheme}://") for scheme in self._schemes)

    def create_transport(self, dsn: Dsn, options: Dict[str, Any], chain: "TransportFactoryChain") -> BaseTransport:
        if not dsn.is_composite:
            raise ConfigurationError(
                f"The '{dsn.scheme}' transport expects a group of transports: {dsn.scheme}://(dsn && dsn)"
            )
        transports = [chain.create(member) for member in dsn.members]
        return self._transport_class(transports, {**dsn.options, **options})


def default_factories() -> List[TransportFactory]:
    return [
        InMemoryTransportFactory(),
        SqlAlchemyTransportFactory(),
        CompositeTransportFactory(("failover", "fo"), FailoverTransport),
        CompositeTransportFactory(("roundrobin", "rr"), RoundRobinTransport),
        CompositeTransportFactory(("longtail", "lt"), LongTailTransport),
    ]


class TransportFactoryChain:
    def __init__(
        self,
        factories: Optional[Iterable[TransportFactory]] = None,
        orchestrator: Optional[SchedulePolicyOrchestrator] = None,
    ):
        self._factories: List[TransportFactory] = list(factories) if factories is not None else default_factories()
        self.orchestrator = orchestrator if orchestrator is not None else SchedulePolicyOrchestrator()

    def register(self, factory: TransportFactory) -> None:
        self._factories.append(factory)

    def create(self, dsn: str, options: Optional[Dict[str, Any]] = None) -> BaseTransport:
        """
        Create the transport described by ``dsn``.

        Raises:
            ConfigurationError: If the DSN is malformed or no factory supports it.
        """
        dsn = dsn.strip()
        for factory in self._factories:
            if factory.support(dsn):
                transport = factory.create_transport(Dsn.from_string(dsn), dict(options or {}), self)
                logger.debug("Created %s from '%s'", type(transport).__name__, dsn)
                return transport

        raise ConfigurationError(f"The DSN '{dsn}' is not supported by any transport factory")


def create_transport(
    dsn: str,
    options: Optional[Dict[str, Any]] = None,
    orchestrator: Optional[SchedulePolicyOrchestrator] = None,
) -> BaseTransport:
    return TransportFactoryChain(orchestrator=orchestrator).create(dsn, options)
