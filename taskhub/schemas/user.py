from datetime import datetime

from pydantic import EmailStr, Field, field_validator
from taskhub.models.user import UserRole
from taskhub.schemas.common import CamelModel
from taskhub.utils.sanitization import sanitize_string
from taskhub.utils.security import BCRYPT_MAX_BYTES


class UserCreate(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=20)
    password: str = Field(..., min_length=8)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)

    @field_validator("username", "first_name", "last_name", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: str | None = None


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str


class TokenClaims(CamelModel):
    """Verified access-token payload, used as the request's current user."""
    id: int
    email: str
    role: UserRole


class UserSummary(CamelModel):
    id: int
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None


class UserResponse(UserSummary):
    role: UserRole
    created_at: datetime | None = None


class LoginResult(CamelModel):
    user: UserResponse
    tokens: AuthTokens


class TokensResult(CamelModel):
    tokens: AuthTokens
