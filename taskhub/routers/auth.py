from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from taskhub.dependencies import get_db, get_current_user
from taskhub.schemas.common import ApiResponse
from taskhub.schemas.user import (
    LoginResult,
    LogoutRequest,
    RefreshTokenRequest,
    TokenClaims,
    TokensResult,
    UserCreate,
    UserLogin,
    UserResponse,
)
from taskhub.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, db: AsyncSession = Depends(get_db)):
    user = await auth_service.register(db, data)
    await db.commit()
    return ApiResponse(message="User registered successfully", data=UserResponse.model_validate(user))

@router.post("/login", response_model=ApiResponse[LoginResult])
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user, tokens = await auth_service.login(db, data.email, data.password)
    await db.commit()
    return ApiResponse(
        message="Login successful",
        data=LoginResult(user=UserResponse.model_validate(user), tokens=tokens),
    )

@router.post("/refresh-token", response_model=ApiResponse[TokensResult])
async def refresh_token(data: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    tokens = await auth_service.refresh(db, data.refresh_token)
    await db.commit()
    return ApiResponse(message="Token refreshed successfully", data=TokensResult(tokens=tokens))

@router.post("/logout", response_model=ApiResponse)
async def logout(
    data: LogoutRequest | None = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    await auth_service.logout(db, current_user.id, data.refresh_token if data else None)
    await db.commit()
    return ApiResponse(message="Logged out successfully")
