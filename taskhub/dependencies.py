from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from taskhub.database import get_db as db_session
from taskhub.models.tasks import TaskPriority, TaskStatus
from taskhub.schemas.common import PaginationParams
from taskhub.schemas.task import TaskFilters
from taskhub.schemas.user import TokenClaims
from taskhub.services import tokens as token_service
from taskhub.utils.errors import AuthenticationError

# auto_error=False so a missing header goes through our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)

def get_db(db: AsyncSession = Depends(db_session)):
    return db

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token is required")
    return token_service.verify_access_token(credentials.credentials)

def get_pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

def get_task_filters(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    assigned_to_id: int | None = Query(None, alias="assignedToId"),
) -> TaskFilters:
    return TaskFilters(status=status, priority=priority, assigned_to_id=assigned_to_id)
