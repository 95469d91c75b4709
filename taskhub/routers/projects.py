from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskhub.dependencies import get_db, get_current_user, get_pagination
from taskhub.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from taskhub.schemas.project import (
    MemberCreate,
    MemberResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from taskhub.schemas.user import TokenClaims
from taskhub.services import projects as project_service

router = APIRouter(prefix="/projects", tags=["projects"])

@router.post("", response_model=ApiResponse[ProjectResponse], status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    project = await project_service.create_project(db, data, current_user.id)
    await db.commit()
    return ApiResponse(message="Project created successfully", data=ProjectResponse.model_validate(project))

@router.get("", response_model=PaginatedResponse[ProjectResponse])
async def list_projects(
    pagination: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    projects, page_info = await project_service.list_projects(db, current_user.id, pagination)
    return PaginatedResponse(
        message="Projects retrieved successfully",
        data=[ProjectResponse.model_validate(p) for p in projects],
        page_info=page_info,
    )

@router.get("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def get_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    project = await project_service.get_project(db, project_id, current_user.id)
    return ApiResponse(message="Project retrieved successfully", data=ProjectResponse.model_validate(project))

@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    project = await project_service.update_project(db, project_id, current_user.id, data)
    await db.commit()
    return ApiResponse(message="Project updated successfully", data=ProjectResponse.model_validate(project))

@router.delete("/{project_id}", response_model=ApiResponse)
async def delete_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    await project_service.delete_project(db, project_id, current_user.id)
    await db.commit()
    return ApiResponse(message="Project deleted successfully")

# ── Membership ─────────────────────────────────────────

@router.post(
    "/{project_id}/members",
    response_model=ApiResponse[MemberResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    project_id: int,
    data: MemberCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    member = await project_service.add_member(db, project_id, current_user.id, data)
    await db.commit()
    return ApiResponse(message="Member added successfully", data=MemberResponse.model_validate(member))

@router.delete("/{project_id}/members/{member_id}", response_model=ApiResponse)
async def remove_member(
    project_id: int,
    member_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    await project_service.remove_member(db, project_id, current_user.id, member_id)
    await db.commit()
    return ApiResponse(message="Member removed successfully")
