from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from taskhub.dependencies import get_db, get_current_user
from taskhub.schemas.common import ApiResponse
from taskhub.schemas.user import TokenClaims, UserResponse, UserSummary
from taskhub.services import auth as auth_service

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    user = await auth_service.get_user(db, current_user.id)
    return ApiResponse(message="User retrieved successfully", data=UserResponse.model_validate(user))

@router.get("/search", response_model=ApiResponse[list[UserSummary]])
async def search_users(
    query: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    users = await auth_service.search_users(db, query, limit)
    return ApiResponse(
        message="Users retrieved successfully",
        data=[UserSummary.model_validate(u) for u in users],
    )
