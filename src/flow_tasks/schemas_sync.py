from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from flow_tasks.commands import Command
from flow_tasks.models import Project, Section, Task, User


# Cursor value meaning "no prior knowledge": the server answers with a full snapshot.
FULL_SYNC_TOKEN = "*"


class ResourceType(str, Enum):
    ALL = "all"
    ITEMS = "items"
    PROJECTS = "projects"
    SECTIONS = "sections"
    USER = "user"


class SyncRequest(BaseModel):
    sync_token: str = FULL_SYNC_TOKEN
    resource_types: list[ResourceType] = Field(default_factory=lambda: [ResourceType.ALL])
    commands: list[Command] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CommandError(BaseModel):
    error_code: Optional[int] = None
    error: Optional[str] = None
    http_code: Optional[int] = None
    error_tag: Optional[str] = None
    error_extra: dict[str, Any] = Field(default_factory=dict)

    def summary(self) -> str:
        return f"code={self.error_code} tag={self.error_tag} http={self.http_code} {self.error or ''}".strip()


CommandStatus = Union[Literal["ok"], CommandError]


class SyncResponse(BaseModel):
    sync_token: str
    full_sync: bool = False
    items: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    user: Optional[User] = None
    temp_id_mapping: dict[str, str] = Field(default_factory=dict)
    sync_status: dict[UUID, CommandStatus] = Field(default_factory=dict)

    @field_validator("items", "projects", "sections", mode="before")
    @classmethod
    def _null_list(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("temp_id_mapping", mode="before")
    @classmethod
    def _null_mapping(cls, v: object) -> object:
        return {} if v is None else v

    @field_validator("sync_status", mode="before")
    @classmethod
    def _normalize_statuses(cls, v: object) -> object:
        # The API answers "ok" or an error object; any other bare string is an error too.
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        out: dict[object, object] = {}
        for key, status in v.items():
            if isinstance(status, str) and status != "ok":
                out[key] = {"error": status}
            else:
                out[key] = status
        return out

    def is_acknowledged(self, key: UUID) -> bool:
        return self.sync_status.get(key) == "ok"

    def command_error(self, key: UUID) -> CommandError | None:
        status = self.sync_status.get(key)
        if isinstance(status, CommandError):
            return status
        return None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
