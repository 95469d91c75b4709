from datetime import datetime

from pydantic import Field, field_validator
from taskhub.models.project import ProjectStatus
from taskhub.models.tasks import TaskPriority, TaskStatus
from taskhub.models.user import UserRole
from taskhub.schemas.common import CamelModel
from taskhub.schemas.user import UserSummary
from taskhub.utils.sanitization import sanitize_string


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class ProjectUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    status: ProjectStatus | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("name", "status", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def uppercase_status(cls, v):
        return v.upper() if isinstance(v, str) else v


class MemberCreate(CamelModel):
    user_id: int
    role: UserRole = UserRole.USER


class MemberResponse(CamelModel):
    id: int
    project_id: int
    user_id: int
    role: UserRole
    joined_at: datetime | None = None
    user: UserSummary | None = None


class TaskSummary(CamelModel):
    id: int
    title: str
    status: TaskStatus
    priority: TaskPriority
    assigned_to_id: int | None = None


class ProjectResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    status: ProjectStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
    members: list[MemberResponse] = []
    tasks: list[TaskSummary] = []
