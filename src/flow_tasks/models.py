from __future__ import annotations

import datetime as dt
import uuid
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flow_tasks.validators import is_date_only, validate_due_date


def new_id() -> str:
    return str(uuid.uuid4())


class WireModel(BaseModel):
    """Base for entities shared by the sync wire format and the local snapshot.

    Python attribute names may differ from the Sync API labels; always dump with
    ``by_alias=True`` so both directions use the API's field names.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(populate_by_name=True, extra="ignore")


class Due(WireModel):
    # "2026-10-18" for all-day tasks, "2026-10-18T09:00:00" (floating) or with a trailing Z.
    date: str
    string: Optional[str] = None
    is_recurring: bool = False
    timezone: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _validate_date(cls, v: str) -> str:
        return validate_due_date(v, "due.date")

    @classmethod
    def on(cls, day: dt.date) -> "Due":
        return cls(date=day.isoformat(), string=day.isoformat())

    @classmethod
    def at(cls, moment: dt.datetime) -> "Due":
        if moment.tzinfo is not None:
            text = moment.astimezone(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        else:
            text = moment.strftime("%Y-%m-%dT%H:%M:%S")
        return cls(date=text, string=text)

    def is_all_day(self) -> bool:
        return is_date_only(self.date)

    def parsed(self) -> dt.date | dt.datetime:
        if self.is_all_day():
            return dt.date.fromisoformat(self.date)
        return dt.datetime.fromisoformat(self.date.replace("Z", "+00:00"))

    def __str__(self) -> str:
        return self.date


class Task(WireModel):
    id: str = Field(min_length=1)
    project_id: str
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    content: str = ""
    done: bool = Field(default=False, alias="checked")
    due: Optional[Due] = None
    order: int = Field(default=0, alias="child_order")
    collapsed: bool = False

    @classmethod
    def new(cls, content: str, project_id: str, due: Due | None = None) -> "Task":
        """Build a locally created task.

        The random identifier doubles as the correlation key (``temp_id``) of
        the matching create command until the server assigns a permanent id.
        """
        return cls(id=new_id(), project_id=project_id, content=content, due=due)


class Project(WireModel):
    id: str = Field(min_length=1)
    name: str
    parent_id: Optional[str] = None
    order: int = Field(default=0, alias="child_order")
    collapsed: bool = False

    @classmethod
    def new(cls, name: str) -> "Project":
        return cls(id=new_id(), name=name)


class Section(WireModel):
    id: str = Field(min_length=1)
    name: str
    project_id: str
    order: int = Field(default=0, alias="section_order")

    @classmethod
    def new(cls, name: str, project_id: str, order: int = 0) -> "Section":
        return cls(id=new_id(), name=name, project_id=project_id, order=order)


class User(WireModel):
    full_name: str = "First Last"
    inbox_project_id: str = ""


def order_key(entity: Task | Project | Section) -> tuple[int, str]:
    return (entity.order, entity.id)
