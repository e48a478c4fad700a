from __future__ import annotations

import logging
from enum import Enum

from flow_tasks.commands import describe
from flow_tasks.domain.command_queue import failed_commands
from flow_tasks.domain.reconciler import reconcile
from flow_tasks.replica import Replica
from flow_tasks.schemas_sync import FULL_SYNC_TOKEN, ResourceType, SyncRequest, SyncResponse
from flow_tasks.transport import SyncTransport, TransportError

logger = logging.getLogger(__name__)


class SyncMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


def build_request(replica: Replica, mode: SyncMode) -> SyncRequest:
    """Snapshot the replica into an outbound request.

    Both modes carry the entire command queue; the copy keeps later local edits
    out of a request that is already on its way.
    """
    sync_token = FULL_SYNC_TOKEN if mode is SyncMode.FULL else replica.sync_token
    return SyncRequest(
        sync_token=sync_token,
        resource_types=[ResourceType.ALL],
        commands=[c.model_copy(deep=True) for c in replica.commands],
    )


async def fetch(transport: SyncTransport, request: SyncRequest) -> SyncResponse:
    try:
        return await transport.exchange(request)
    except TransportError:
        raise
    except Exception as e:
        raise TransportError(f"sync exchange failed: {e}") from e


def apply(replica: Replica, response: SyncResponse) -> Replica:
    for command, error in failed_commands(replica.commands, response.sync_status):
        # Kept queued; retried next cycle.
        logger.warning("command rejected by server %s %s", describe(command), error.summary())

    merged = reconcile(replica, response)
    logger.info(
        "sync applied full_sync=%s tasks=%d pending_commands=%d",
        response.full_sync,
        len(merged.tasks),
        len(merged.commands),
    )
    return merged


async def sync(replica: Replica, transport: SyncTransport, mode: SyncMode) -> Replica:
    """Run one cycle. On TransportError the input replica is left untouched."""
    request = build_request(replica, mode)
    logger.info("sync start mode=%s commands=%d", mode.value, len(request.commands))
    response = await fetch(transport, request)
    return apply(replica, response)
