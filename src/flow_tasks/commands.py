"""Queued mutations sent to the Sync API.

A command is a recorded intent to change remote state. Its ``uuid`` is the
idempotency key the server acknowledges in ``sync_status``; ``temp_id`` is only
set on creation commands and carries the locally generated task id the server
maps to a permanent one in ``temp_id_mapping``.
"""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import Field

from flow_tasks.models import Due, Task, WireModel


class CreateTaskArgs(WireModel):
    project_id: str
    content: str
    due: Optional[Due] = None


class CompleteTaskArgs(WireModel):
    id: str


class BaseCommand(WireModel):
    kind: ClassVar[str]

    uuid: UUID = Field(default_factory=uuid4)
    temp_id: Optional[str] = None


class CreateTask(BaseCommand):
    kind: ClassVar[str] = "item_add"

    type: Literal["item_add"] = "item_add"
    args: CreateTaskArgs

    @classmethod
    def for_task(cls, task: Task) -> "CreateTask":
        return cls(
            temp_id=task.id,
            args=CreateTaskArgs(project_id=task.project_id, content=task.content, due=task.due),
        )


class CompleteTask(BaseCommand):
    kind: ClassVar[str] = "item_complete"

    type: Literal["item_complete"] = "item_complete"
    args: CompleteTaskArgs

    @classmethod
    def for_task_id(cls, task_id: str) -> "CompleteTask":
        return cls(args=CompleteTaskArgs(id=task_id))


Command = Annotated[Union[CreateTask, CompleteTask], Field(discriminator="type")]


def target_task_id(command: CreateTask | CompleteTask) -> str | None:
    """Return the local task id a command refers to."""
    match command:
        case CreateTask():
            return command.temp_id
        case CompleteTask():
            return command.args.id
    raise TypeError(f"unknown command type: {type(command).__name__}")


def describe(command: CreateTask | CompleteTask) -> str:
    match command:
        case CreateTask():
            return f"{command.kind} uuid={command.uuid} temp_id={command.temp_id}"
        case CompleteTask():
            return f"{command.kind} uuid={command.uuid} task_id={command.args.id}"
    raise TypeError(f"unknown command type: {type(command).__name__}")
