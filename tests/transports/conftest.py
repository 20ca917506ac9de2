import pytest

from cron_scheduler.exceptions import TransportError
from cron_scheduler.transports.in_memory import InMemoryTransport


class BrokenTransport(InMemoryTransport):
    """
    Fails every operation, counting the calls it received.
    """

    def __init__(self):
        super().__init__()
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise TransportError("Connection refused")

    async def list(self):
        self._fail()

    async def get(self, name):
        self._fail()

    async def create(self, task):
        self._fail()

    async def update(self, name, task):
        self._fail()

    async def delete(self, name):
        self._fail()

    async def clear(self):
        self._fail()


@pytest.fixture(scope="function")
def broken_transport():
    return BrokenTransport
