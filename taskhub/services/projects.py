import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from taskhub.models.project import Project, ProjectMember
from taskhub.models.tasks import Task
from taskhub.models.user import User, UserRole
from taskhub.schemas.common import PageInfo, PaginationParams
from taskhub.schemas.project import MemberCreate, ProjectCreate, ProjectUpdate
from taskhub.services import permissions
from taskhub.services.pagination import build_page_info, resolve_order_by
from taskhub.utils.errors import AuthorizationError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

TASK_SUMMARY_COLUMNS = (Task.id, Task.title, Task.status, Task.priority, Task.assigned_to_id)

PROJECT_SORT_FIELDS = {
    "createdAt": Project.created_at,
    "updatedAt": Project.updated_at,
    "name": Project.name,
    "status": Project.status,
}


def _project_query(with_tasks: bool = True):
    options = [selectinload(Project.members).selectinload(ProjectMember.user)]
    if with_tasks:
        # Only the TaskSummary columns; full rows come from the task endpoints
        options.append(selectinload(Project.tasks).load_only(*TASK_SUMMARY_COLUMNS))
    return select(Project).options(*options)


async def _load_project(
    db: AsyncSession, project_id: int, for_update: bool = False, with_tasks: bool = True
) -> Project:
    stmt = (
        _project_query(with_tasks)
        .filter(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        # Serializes membership changes per project, so two removals cannot
        # both count the same set of admins.
        stmt = stmt.with_for_update(of=Project)

    result = await db.execute(stmt)
    project = result.scalars().first()
    if not project:
        raise NotFoundError("Project")
    return project


def _require_member(project: Project, user_id: int) -> ProjectMember:
    membership = permissions.find_membership(project, user_id)
    if membership is None:
        raise AuthorizationError("You are not a member of this project")
    return membership


def _require_admin(project: Project, user_id: int, message: str) -> ProjectMember:
    membership = _require_member(project, user_id)
    if not permissions.can_mutate_project(membership):
        raise AuthorizationError(message)
    return membership


async def create_project(db: AsyncSession, data: ProjectCreate, creator_id: int) -> Project:
    """The project and its creator's ADMIN membership go into the same transaction."""
    project = Project(
        name=data.name,
        description=data.description,
        members=[ProjectMember(user_id=creator_id, role=UserRole.ADMIN)],
    )
    db.add(project)
    await db.flush()

    logger.info("Project created", extra={"project_id": project.id, "user_id": creator_id})
    return await _load_project(db, project.id)


async def get_project(db: AsyncSession, project_id: int, user_id: int) -> Project:
    project = await _load_project(db, project_id)
    _require_member(project, user_id)
    return project


async def list_projects(
    db: AsyncSession, user_id: int, pagination: PaginationParams
) -> tuple[list[Project], PageInfo]:
    order_by = resolve_order_by(PROJECT_SORT_FIELDS, pagination)
    is_member = Project.members.any(ProjectMember.user_id == user_id)

    total = (await db.execute(
        select(func.count(Project.id)).filter(is_member)
    )).scalar_one()

    result = await db.execute(
        _project_query()
        .filter(is_member)
        .order_by(order_by, Project.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), build_page_info(pagination, total)


async def update_project(db: AsyncSession, project_id: int, user_id: int, data: ProjectUpdate) -> Project:
    project = await _load_project(db, project_id)
    _require_admin(project, user_id, "Only project admin can update project")

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(project, key, value)
    await db.flush()

    logger.info("Project updated", extra={"project_id": project_id, "user_id": user_id})
    return await _load_project(db, project_id)


async def delete_project(db: AsyncSession, project_id: int, user_id: int) -> None:
    project = await _load_project(db, project_id)
    _require_admin(project, user_id, "Only project admin can delete project")

    # members and tasks are loaded, so the ORM cascade removes them too
    await db.delete(project)
    await db.flush()

    logger.info("Project deleted", extra={"project_id": project_id, "user_id": user_id})


async def add_member(db: AsyncSession, project_id: int, user_id: int, data: MemberCreate) -> ProjectMember:
    project = await _load_project(db, project_id, for_update=True, with_tasks=False)
    _require_admin(project, user_id, "Only project admin can add members")

    if await db.get(User, data.user_id) is None:
        raise NotFoundError("User")
    if permissions.is_member(project, data.user_id):
        raise ConflictError("User is already a member of this project")

    member = ProjectMember(user_id=data.user_id, role=data.role)
    project.members.append(member)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User is already a member of this project")

    logger.info("Project member added", extra={"project_id": project_id, "user_id": data.user_id})

    result = await db.execute(
        select(ProjectMember)
        .options(selectinload(ProjectMember.user))
        .filter(ProjectMember.id == member.id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one()


async def remove_member(db: AsyncSession, project_id: int, user_id: int, member_id: int) -> None:
    """`member_id` is the user id of the member to remove."""
    project = await _load_project(db, project_id, for_update=True, with_tasks=False)
    _require_admin(project, user_id, "Only project admin can remove members")

    target = permissions.find_membership(project, member_id)
    if target is None:
        raise NotFoundError("Project member")

    if target.role == UserRole.ADMIN and permissions.count_admins(project.members) <= 1:
        raise ConflictError("Cannot remove the last admin from the project")

    project.members.remove(target)
    await db.flush()

    logger.info(
        "Project member removed",
        extra={"project_id": project_id, "user_id": member_id},
    )
