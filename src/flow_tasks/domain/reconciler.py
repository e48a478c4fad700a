from __future__ import annotations

import logging

from flow_tasks.commands import CompleteTask
from flow_tasks.domain.command_queue import QueuedCommand, without_acknowledged
from flow_tasks.models import Task
from flow_tasks.replica import Replica
from flow_tasks.schemas_sync import SyncResponse

logger = logging.getLogger(__name__)


def _remap_temp_ids(tasks: list[Task], temp_id_mapping: dict[str, str]) -> list[Task]:
    out = list(tasks)
    for temp_id, server_id in temp_id_mapping.items():
        index = next((i for i, t in enumerate(out) if t.id == temp_id), None)
        if index is None:
            continue
        if any(t.id == server_id for t in out):
            # Server id already known locally; keep ids unique.
            del out[index]
            continue
        out[index].id = server_id
        logger.debug("remapped task id %s -> %s", temp_id, server_id)
    return out


def _remap_command_targets(commands: list[QueuedCommand], temp_id_mapping: dict[str, str]) -> None:
    # Completions queued against a temp id must follow the task to its server id.
    for command in commands:
        if isinstance(command, CompleteTask) and command.args.id in temp_id_mapping:
            command.args.id = temp_id_mapping[command.args.id]


def _merge_incoming_tasks(tasks: list[Task], incoming: list[Task]) -> list[Task]:
    merged = list(tasks)
    for task in incoming:
        index = next((i for i, t in enumerate(merged) if t.id == task.id), None)
        if task.done:
            # A completed task from the server is a deletion signal, not a record to keep.
            if index is not None:
                del merged[index]
                logger.debug("tombstoned task id=%s", task.id)
            continue
        if index is not None:
            merged[index] = task.model_copy(deep=True)
        else:
            merged.append(task.model_copy(deep=True))
    return merged


def reconcile(replica: Replica, response: SyncResponse) -> Replica:
    """Pure merge of a server response into a replica.

    - No IO, no clock; the input replica is never mutated.
    - Idempotent: matching is by id/key equality, never by position, so
      applying the same response twice equals applying it once.
    - Temp-id remapping runs before the upsert/tombstone pass, otherwise an
      incoming task already carrying its server id would miss the local task
      still known under its temp id and be inserted twice.
    """

    merged = replica.model_copy(deep=True)
    merged.sync_token = response.sync_token

    if response.user is not None:
        merged.user = response.user.model_copy(deep=True)

    # Only replace when non-empty: an empty list cannot be told apart from
    # "not included in this response".
    if response.projects:
        merged.projects = [p.model_copy(deep=True) for p in response.projects]
    if response.sections:
        merged.sections = [s.model_copy(deep=True) for s in response.sections]

    if response.full_sync:
        merged.tasks = [t.model_copy(deep=True) for t in response.items]
    else:
        remapped = _remap_temp_ids(merged.tasks, response.temp_id_mapping)
        merged.tasks = _merge_incoming_tasks(remapped, response.items)

    merged.commands = without_acknowledged(merged.commands, response.sync_status)
    _remap_command_targets(merged.commands, response.temp_id_mapping)
    return merged
