"""
Authorization rules.

Pure decisions over already-loaded rows: no queries and no side effects. The
services load the project/membership/task, ask these functions, and raise
AuthorizationError themselves when the answer is no.

Only the project-scoped membership role matters here. A user's global role
never grants anything inside a project, and MANAGER has no more rights than
USER; ADMIN is the single privileged role.
"""
from typing import Iterable

from taskhub.models.project import Project, ProjectMember
from taskhub.models.tasks import Task
from taskhub.models.user import UserRole


def find_membership(project: Project, user_id: int) -> ProjectMember | None:
    return next((m for m in project.members if m.user_id == user_id), None)


def is_member(project: Project, user_id: int) -> bool:
    return find_membership(project, user_id) is not None


def is_project_admin(project: Project, user_id: int) -> bool:
    membership = find_membership(project, user_id)
    return membership is not None and membership.role == UserRole.ADMIN


def can_mutate_project(membership: ProjectMember | None) -> bool:
    return membership is not None and membership.role == UserRole.ADMIN


def can_view_task(task: Task, membership: ProjectMember | None) -> bool:
    """Admins see every task of the project, everyone else only their own assignments."""
    if membership is None or membership.project_id != task.project_id:
        return False
    if membership.role == UserRole.ADMIN:
        return True
    return task.assigned_to_id is not None and task.assigned_to_id == membership.user_id


def can_delete_task(task: Task, user_id: int, membership: ProjectMember | None) -> bool:
    if task.created_by_id == user_id:
        return True
    return can_mutate_project(membership)


def count_admins(members: Iterable[ProjectMember]) -> int:
    return sum(1 for m in members if m.role == UserRole.ADMIN)
