"""Background sync worker and the foreground session that owns the replica.

The worker only ever turns a request into an outcome and sends it through a
one-slot channel. The session is the single writer: it applies user
mutations, applies finished outcomes through the reconciler and persists after
each.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream, TaskGroup

from flow_tasks.domain.command_queue import CommandState, CommandTracker
from flow_tasks.models import Due, Task
from flow_tasks.replica import Replica
from flow_tasks.schemas_sync import SyncRequest, SyncResponse
from flow_tasks.services import sync_service
from flow_tasks.services.sync_service import SyncMode
from flow_tasks.storage import ReplicaStore
from flow_tasks.transport import SyncTransport, TransportError

logger = logging.getLogger(__name__)


class SyncInProgressError(RuntimeError):
    pass


@dataclass(frozen=True)
class SyncOutcome:
    request: SyncRequest
    response: SyncResponse | None = None
    error: TransportError | None = None

    @property
    def ok(self) -> bool:
        return self.response is not None


class SyncWorker:
    def __init__(self, transport: SyncTransport, send: ObjectSendStream[SyncOutcome]) -> None:
        self._transport = transport
        self._send = send

    async def run(self, request: SyncRequest) -> None:
        try:
            try:
                response = await sync_service.fetch(self._transport, request)
            except TransportError as e:
                outcome = SyncOutcome(request=request, error=e)
            else:
                outcome = SyncOutcome(request=request, response=response)
            await self._send.send(outcome)
        except anyio.get_cancelled_exc_class():
            # The session waits on every started cycle, so report even when cancelled.
            with anyio.CancelScope(shield=True):
                await self._send.send(
                    SyncOutcome(request=request, error=TransportError("sync cancelled"))
                )
            raise


class SyncSession:
    def __init__(
        self,
        *,
        replica: Replica,
        store: ReplicaStore,
        transport: SyncTransport,
        task_group: TaskGroup,
    ) -> None:
        self._replica = replica
        self._store = store
        self._task_group = task_group
        self._tracker = CommandTracker()
        self._in_flight = False
        self._closed = False
        # True while the last cycle failed and nothing changed since.
        self._last_failed = False
        send, receive = anyio.create_memory_object_stream(max_buffer_size=1)
        self._outcomes: ObjectReceiveStream[SyncOutcome] = receive
        self._worker = SyncWorker(transport, send)
        self._send = send

    @property
    def replica(self) -> Replica:
        return self._replica

    @property
    def sync_in_progress(self) -> bool:
        return self._in_flight

    def command_state(self, key: UUID) -> CommandState | None:
        return self._tracker.state_of(key, self._replica.commands)

    # --- user mutations (persisted immediately) ---

    def create_task(self, content: str, project_id: str, due: Due | None = None) -> Task:
        task = self._replica.create_task(content, project_id, due=due)
        self._last_failed = False
        self._store.save(self._replica)
        return task

    def create_inbox_task(self, content: str, due: Due | None = None) -> Task:
        task = self._replica.create_inbox_task(content, due=due)
        self._last_failed = False
        self._store.save(self._replica)
        return task

    def set_done(self, task_id: str, done: bool) -> Task:
        task = self._replica.set_done(task_id, done)
        self._last_failed = False
        self._store.save(self._replica)
        return task

    # --- sync cycle ---

    def start_sync(self, mode: SyncMode = SyncMode.INCREMENTAL) -> SyncRequest:
        if self._in_flight:
            raise SyncInProgressError("a sync cycle is already in flight")
        request = sync_service.build_request(self._replica, mode)
        self._tracker.mark_sent(request.commands)
        self._in_flight = True
        logger.info("sync start mode=%s commands=%d", mode.value, len(request.commands))
        self._task_group.start_soon(self._worker.run, request)
        return request

    def poll(self) -> SyncOutcome | None:
        """Apply a finished cycle if one is waiting; never blocks."""
        try:
            outcome = self._outcomes.receive_nowait()
        except anyio.WouldBlock:
            return None
        return self._apply(outcome)

    async def wait_for_sync(self) -> SyncOutcome:
        outcome = await self._outcomes.receive()
        return self._apply(outcome)

    async def sync_now(self, mode: SyncMode = SyncMode.INCREMENTAL) -> Replica:
        """Start a cycle and wait for it. Raises TransportError on failure."""
        _ = self.start_sync(mode)
        outcome = await self.wait_for_sync()
        if outcome.error is not None:
            raise outcome.error
        return self._replica

    def _apply(self, outcome: SyncOutcome) -> SyncOutcome:
        self._in_flight = False
        if outcome.response is None:
            self._tracker.abort()
            self._last_failed = True
            logger.warning("sync failed; replica unchanged: %s", outcome.error)
            return outcome

        self._replica = sync_service.apply(self._replica, outcome.response)
        self._tracker.settle(outcome.response.sync_status)
        self._last_failed = False
        self._store.save(self._replica)
        return outcome

    async def close(self) -> None:
        """Drain: finish any in-flight cycle, sync once more and persist.

        The final sync is skipped when the last cycle failed and nothing changed
        since; it would only repeat that failure.
        """
        if self._closed:
            return
        self._closed = True
        with anyio.CancelScope(shield=True):
            if self._in_flight:
                _ = await self.wait_for_sync()
            try:
                if not self._last_failed:
                    _ = await self.sync_now(SyncMode.INCREMENTAL)
            except TransportError:
                logger.warning("final sync failed; pending commands kept", exc_info=True)
            finally:
                self._store.save(self._replica)
                await self._send.aclose()
                await self._outcomes.aclose()


@asynccontextmanager
async def open_session(
    *, store: ReplicaStore, transport: SyncTransport
) -> AsyncIterator[SyncSession]:
    replica = store.load()
    failure: Exception | None = None
    async with anyio.create_task_group() as tg:
        session = SyncSession(replica=replica, store=store, transport=transport, task_group=tg)
        try:
            yield session
        except Exception as e:
            # Re-raised outside the task group so callers don't get an ExceptionGroup.
            failure = e
        finally:
            await session.close()
    if failure is not None:
        raise failure
