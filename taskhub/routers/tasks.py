from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskhub.dependencies import get_db, get_current_user, get_pagination, get_task_filters
from taskhub.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from taskhub.schemas.task import TaskCreate, TaskFilters, TaskResponse, TaskUpdate
from taskhub.schemas.user import TokenClaims
from taskhub.services import tasks as task_service

router = APIRouter(prefix="/projects/{project_id}/tasks", tags=["tasks"])

@router.post("", response_model=ApiResponse[TaskResponse], status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: int,
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    task = await task_service.create_task(db, project_id, current_user.id, data)
    await db.commit()
    return ApiResponse(message="Task created successfully", data=TaskResponse.model_validate(task))

@router.get("", response_model=PaginatedResponse[TaskResponse])
async def list_tasks(
    project_id: int,
    pagination: PaginationParams = Depends(get_pagination),
    filters: TaskFilters = Depends(get_task_filters),
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    tasks, page_info = await task_service.list_project_tasks(
        db, project_id, current_user.id, pagination, filters
    )
    return PaginatedResponse(
        message="Tasks retrieved successfully",
        data=[TaskResponse.model_validate(t) for t in tasks],
        page_info=page_info,
    )

@router.get("/{task_id}", response_model=ApiResponse[TaskResponse])
async def get_task(
    project_id: int,
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    task = await task_service.get_task(db, task_id, current_user.id, project_id)
    return ApiResponse(message="Task retrieved successfully", data=TaskResponse.model_validate(task))

@router.put("/{task_id}", response_model=ApiResponse[TaskResponse])
async def update_task(
    project_id: int,
    task_id: int,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    task = await task_service.update_task(db, task_id, current_user.id, data, project_id)
    await db.commit()
    return ApiResponse(message="Task updated successfully", data=TaskResponse.model_validate(task))

@router.delete("/{task_id}", response_model=ApiResponse)
async def delete_task(
    project_id: int,
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    await task_service.delete_task(db, task_id, current_user.id, project_id)
    await db.commit()
    return ApiResponse(message="Task deleted successfully")
