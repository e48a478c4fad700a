from __future__ import annotations

from collections.abc import Callable

import anyio
import pytest

from flow_tasks.replica import Replica
from flow_tasks.schemas_sync import SyncRequest, SyncResponse
from flow_tasks.transport import TransportError


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeTransport:
    """In-memory Sync API stand-in.

    ``handler`` builds the response from the request; ``fail`` makes every
    exchange raise; ``gate`` (when set) holds the exchange until released so a
    test can act while a cycle is in flight.
    """

    def __init__(self, handler: Callable[[SyncRequest], SyncResponse] | None = None) -> None:
        self.handler = handler or (lambda req: SyncResponse(sync_token="tok-next"))
        self.requests: list[SyncRequest] = []
        self.fail = False
        self.gate: anyio.Event | None = None

    async def exchange(self, request: SyncRequest) -> SyncResponse:
        self.requests.append(request.model_copy(deep=True))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise TransportError("connection refused")
        return self.handler(request)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def replica() -> Replica:
    r = Replica.default()
    # Stable inbox id keeps assertions readable.
    r.projects[0].id = "INBOX_ID"
    r.user.inbox_project_id = "INBOX_ID"
    return r
