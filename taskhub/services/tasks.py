import logging

from sqlalchemy import and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from taskhub.models.project import Project, ProjectMember
from taskhub.models.tasks import Task
from taskhub.models.user import UserRole
from taskhub.schemas.common import PageInfo, PaginationParams
from taskhub.schemas.task import TaskCreate, TaskFilters, TaskUpdate
from taskhub.services import permissions
from taskhub.services.pagination import build_page_info, resolve_order_by
from taskhub.utils.errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TASK_SORT_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "title": Task.title,
    "status": Task.status,
    "priority": Task.priority,
    "dueDate": Task.due_date,
}


def _task_query():
    return select(Task).options(
        selectinload(Task.project),
        selectinload(Task.created_by),
        selectinload(Task.assigned_to),
    )


async def get_membership(db: AsyncSession, project_id: int, user_id: int) -> ProjectMember | None:
    result = await db.execute(
        select(ProjectMember).filter(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    return result.scalars().first()


async def _ensure_assignee_is_member(db: AsyncSession, project_id: int, assignee_id: int | None):
    if assignee_id is None:
        return
    if await get_membership(db, project_id, assignee_id) is None:
        raise ValidationError({"assignedToId": "Assignee must be a member of this project"})


async def _reload(db: AsyncSession, task_id: int) -> Task:
    result = await db.execute(
        _task_query().filter(Task.id == task_id).execution_options(populate_existing=True)
    )
    return result.scalars().one()


async def create_task(db: AsyncSession, project_id: int, user_id: int, data: TaskCreate) -> Task:
    """Only project admins create tasks; the creator is fixed from here on."""
    if await db.get(Project, project_id) is None:
        raise NotFoundError("Project")

    membership = await get_membership(db, project_id, user_id)
    if not permissions.can_mutate_project(membership):
        raise AuthorizationError("Only project admins can create tasks")

    await _ensure_assignee_is_member(db, project_id, data.assigned_to_id)

    task = Task(
        title=data.title,
        description=data.description,
        priority=data.priority,
        project_id=project_id,
        created_by_id=user_id,
        assigned_to_id=data.assigned_to_id,
        due_date=data.due_date,
    )
    db.add(task)
    await db.flush()

    logger.info("Task created", extra={"task_id": task.id, "project_id": project_id, "user_id": user_id})
    return await _reload(db, task.id)


async def _get_task_with_membership(
    db: AsyncSession, task_id: int, user_id: int, project_id: int | None = None
) -> tuple[Task, ProjectMember]:
    result = await db.execute(_task_query().filter(Task.id == task_id))
    task = result.scalars().first()
    # A task addressed through another project's route does not exist there
    if not task or (project_id is not None and task.project_id != project_id):
        raise NotFoundError("Task")

    membership = await get_membership(db, task.project_id, user_id)
    if membership is None:
        raise AuthorizationError("You do not have access to this task")

    if not permissions.can_view_task(task, membership):
        raise AuthorizationError("You can only access tasks assigned to you")

    return task, membership


async def get_task(db: AsyncSession, task_id: int, user_id: int, project_id: int | None = None) -> Task:
    task, _ = await _get_task_with_membership(db, task_id, user_id, project_id)
    return task


async def list_project_tasks(
    db: AsyncSession,
    project_id: int,
    user_id: int,
    pagination: PaginationParams,
    filters: TaskFilters | None = None,
) -> tuple[list[Task], PageInfo]:
    membership = await get_membership(db, project_id, user_id)
    if membership is None:
        raise AuthorizationError("You are not a member of this project")

    order_by = resolve_order_by(TASK_SORT_FIELDS, pagination)
    filters = filters or TaskFilters()

    conditions = [Task.project_id == project_id]
    if filters.status:
        conditions.append(Task.status == filters.status)
    if filters.priority:
        conditions.append(Task.priority == filters.priority)

    if membership.role == UserRole.ADMIN:
        if filters.assigned_to_id is not None:
            conditions.append(Task.assigned_to_id == filters.assigned_to_id)
    else:
        # Non-admins only ever see their own assignments, whatever filter they sent
        conditions.append(Task.assigned_to_id == user_id)

    where = and_(*conditions)
    total = (await db.execute(select(func.count(Task.id)).filter(where))).scalar_one()

    result = await db.execute(
        _task_query()
        .filter(where)
        .order_by(order_by, Task.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), build_page_info(pagination, total)


async def update_task(
    db: AsyncSession, task_id: int, user_id: int, data: TaskUpdate, project_id: int | None = None
) -> Task:
    # Same visibility gate as reading: a non-admin can only touch their own assignments
    task, _ = await _get_task_with_membership(db, task_id, user_id, project_id)

    changes = data.model_dump(exclude_unset=True)
    if "assigned_to_id" in changes:
        await _ensure_assignee_is_member(db, task.project_id, changes["assigned_to_id"])

    for key, value in changes.items():
        setattr(task, key, value)
    await db.flush()

    logger.info("Task updated", extra={"task_id": task_id, "user_id": user_id})
    return await _reload(db, task_id)


async def delete_task(db: AsyncSession, task_id: int, user_id: int, project_id: int | None = None) -> None:
    task, membership = await _get_task_with_membership(db, task_id, user_id, project_id)

    if not permissions.can_delete_task(task, user_id, membership):
        raise AuthorizationError("Only task creator or project admin can delete this task")

    await db.delete(task)
    await db.flush()

    logger.info("Task deleted", extra={"task_id": task_id, "user_id": user_id})
