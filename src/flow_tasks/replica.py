from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field

from flow_tasks.commands import Command, CompleteTask, CreateTask
from flow_tasks.domain.command_queue import find_completion
from flow_tasks.models import Due, Project, Section, Task, User, WireModel, order_key
from flow_tasks.schemas_sync import FULL_SYNC_TOKEN

logger = logging.getLogger(__name__)

INBOX_PROJECT_NAME = "Inbox"


class ReplicaError(RuntimeError):
    pass


class TaskNotFoundError(ReplicaError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class ProjectNotFoundError(ReplicaError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"project not found: {project_id}")
        self.project_id = project_id


class Replica(WireModel):
    """Local copy of the task list plus the queue of not-yet-acknowledged commands.

    Mutations are optimistic: they change the collections immediately and record
    a command for the next sync cycle. Read projections never mutate.
    """

    sync_token: str = FULL_SYNC_TOKEN
    tasks: list[Task] = Field(default_factory=list, alias="items")
    projects: list[Project] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    user: User = Field(default_factory=User)
    commands: list[Command] = Field(default_factory=list)

    @classmethod
    def default(cls) -> "Replica":
        inbox = Project.new(INBOX_PROJECT_NAME)
        return cls(projects=[inbox], user=User(inbox_project_id=inbox.id))

    # --- mutations ---

    def create_task(self, content: str, project_id: str, due: Due | None = None) -> Task:
        task = Task.new(content, project_id, due=due)
        self.commands.append(CreateTask.for_task(task))
        self.tasks.append(task)
        logger.debug("created local task id=%s project_id=%s", task.id, project_id)
        return task

    def create_inbox_task(self, content: str, due: Due | None = None) -> Task:
        return self.create_task(content, self.user.inbox_project_id, due=due)

    def set_done(self, task_id: str, done: bool) -> Task:
        """Mark a task complete (or incomplete) and queue (or cancel) its completion.

        Raises TaskNotFoundError, leaving tasks and queue untouched, if no task
        has ``task_id``.
        """
        task = self.task_with_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        task.done = done
        queued = find_completion(self.commands, task_id)
        if done:
            if queued is None:
                self.commands.append(CompleteTask.for_task_id(task_id))
        elif queued is not None:
            # Cancel rather than queue an opposing command.
            del self.commands[queued]
        return task

    # --- read projections ---

    def task_with_id(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def project_with_id(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def inbox_project(self) -> Project:
        project = self.project_with_id(self.user.inbox_project_id)
        if project is None:
            raise ProjectNotFoundError(self.user.inbox_project_id)
        return project

    def sorted_projects(self) -> list[Project]:
        return sorted(self.projects, key=order_key)

    def inbox_tasks(self, include_done: bool = False) -> list[Task]:
        inbox_id = self.user.inbox_project_id
        return sorted(
            (t for t in self.tasks if t.project_id == inbox_id and (include_done or not t.done)),
            key=order_key,
        )

    def tasks_in_project(self, project_id: str) -> list[Task]:
        return sorted((t for t in self.tasks if t.project_id == project_id), key=order_key)

    def subtasks(self, task_id: str) -> list[Task]:
        return sorted((t for t in self.tasks if t.parent_id == task_id), key=order_key)

    def sections_and_tasks_in_project(
        self, project_id: str
    ) -> list[tuple[Optional[Section], list[Task]]]:
        """Group a project's tasks by section; the section-less group comes first."""
        in_project = self.tasks_in_project(project_id)
        sections = sorted((s for s in self.sections if s.project_id == project_id), key=order_key)

        groups: list[tuple[Optional[Section], list[Task]]] = [
            (None, [t for t in in_project if t.section_id is None])
        ]
        for section in sections:
            groups.append((section, [t for t in in_project if t.section_id == section.id]))
        return groups

    def to_snapshot(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_snapshot(cls, raw: str) -> "Replica":
        return cls.model_validate_json(raw)
