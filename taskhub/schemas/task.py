import re
from datetime import datetime

from pydantic import AwareDatetime, Field, field_validator
from taskhub.models.tasks import TaskPriority, TaskStatus
from taskhub.schemas.common import CamelModel
from taskhub.schemas.user import UserSummary
from taskhub.utils.sanitization import sanitize_string

# Full UTC timestamp, e.g. 2030-01-15T12:00:00Z or 2030-01-15T12:00:00.250Z
ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")


def require_iso_datetime(v):
    """Only full UTC timestamp strings pass; bare dates, epoch numbers and local times do not."""
    if v is None or isinstance(v, datetime):
        return v
    if not isinstance(v, str) or not ISO_DATETIME_RE.match(v):
        raise ValueError("Must be an ISO 8601 UTC datetime, e.g. 2030-01-15T12:00:00Z")
    return v


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to_id: int | None = None
    due_date: AwareDatetime | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def iso_due_date(cls, v):
        return require_iso_datetime(v)


class TaskUpdate(CamelModel):
    """Partial update: omitted fields stay as they are, null clears assignee / due date."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to_id: int | None = None
    due_date: AwareDatetime | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("title", "status", "priority", mode="before")
    @classmethod
    def not_null(cls, v):
        # Only runs for values actually sent, so omitting the field is still fine
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def iso_due_date(cls, v):
        return require_iso_datetime(v)


class TaskFilters(CamelModel):
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to_id: int | None = None


class ProjectRef(CamelModel):
    id: int
    name: str


class TaskResponse(CamelModel):
    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    project_id: int
    created_by_id: int
    assigned_to_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    project: ProjectRef | None = None
    created_by: UserSummary | None = None
    assigned_to: UserSummary | None = None
