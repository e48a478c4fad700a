from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from uuid import UUID

from flow_tasks.commands import CompleteTask, CreateTask
from flow_tasks.schemas_sync import CommandError, CommandStatus


QueuedCommand = CreateTask | CompleteTask


class CommandState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    ACKNOWLEDGED = "acknowledged"


def find_completion(commands: Sequence[QueuedCommand], task_id: str) -> int | None:
    """Index of the queued completion for ``task_id``, if any."""
    for index, command in enumerate(commands):
        if isinstance(command, CompleteTask) and command.args.id == task_id:
            return index
    return None


def without_acknowledged(
    commands: Iterable[QueuedCommand], statuses: Mapping[UUID, CommandStatus]
) -> list[QueuedCommand]:
    """Keep every command not explicitly acknowledged with "ok".

    Missing keys and error statuses both stay queued for the next cycle.
    """
    return [c for c in commands if statuses.get(c.uuid) != "ok"]


def failed_commands(
    commands: Iterable[QueuedCommand], statuses: Mapping[UUID, CommandStatus]
) -> list[tuple[QueuedCommand, CommandError]]:
    out: list[tuple[QueuedCommand, CommandError]] = []
    for command in commands:
        status = statuses.get(command.uuid)
        if isinstance(status, CommandError):
            out.append((command, status))
    return out


class CommandTracker:
    """Tracks which queued commands rode in the most recently sent request.

    The queue itself lives on the replica; the tracker only remembers keys, so a
    command cancelled while in flight simply disappears from the queue and a
    later acknowledgement for it has nothing left to remove.
    """

    def __init__(self) -> None:
        self._in_flight: frozenset[UUID] = frozenset()
        self._acknowledged: set[UUID] = set()

    @property
    def in_flight(self) -> frozenset[UUID]:
        return self._in_flight

    def mark_sent(self, commands: Iterable[QueuedCommand]) -> None:
        self._in_flight = frozenset(c.uuid for c in commands)

    def state_of(self, key: UUID, queue: Sequence[QueuedCommand]) -> CommandState | None:
        """State of ``key`` against the current queue, or None if never seen/cancelled."""
        queued = any(c.uuid == key for c in queue)
        if queued:
            return CommandState.IN_FLIGHT if key in self._in_flight else CommandState.PENDING
        if key in self._acknowledged:
            return CommandState.ACKNOWLEDGED
        return None

    def settle(self, statuses: Mapping[UUID, CommandStatus]) -> None:
        """Close the in-flight window after a merge (or a failed exchange)."""
        self._acknowledged.update(k for k in self._in_flight if statuses.get(k) == "ok")
        self._in_flight = frozenset()

    def abort(self) -> None:
        self._in_flight = frozenset()
