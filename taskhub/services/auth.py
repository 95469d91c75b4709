import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskhub.models.user import User, UserRole
from taskhub.schemas.user import AuthTokens, UserCreate
from taskhub.services import tokens as token_service
from taskhub.utils.errors import AuthenticationError, ConflictError, NotFoundError
from taskhub.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


async def register(db: AsyncSession, data: UserCreate) -> User:
    result = await db.execute(
        select(User).filter(or_(User.email == data.email, User.username == data.username))
    )
    existing = result.scalars().first()
    if existing:
        duplicate_field = "email" if existing.email == data.email else "username"
        raise ConflictError(f"User with this {duplicate_field} already exists")

    user = User(
        email=data.email,
        username=data.username,
        hashed_password=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=UserRole.USER,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email/username
        await db.rollback()
        raise ConflictError("User with this email or username already exists")

    logger.info("User registered", extra={"user_id": user.id})
    return user


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, AuthTokens]:
    result = await db.execute(select(User).filter(User.email == email))
    user = result.scalars().first()

    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt")
        raise AuthenticationError("Invalid email or password")

    tokens = await token_service.issue_tokens(db, user)
    logger.info("User logged in", extra={"user_id": user.id})
    return user, tokens


async def refresh(db: AsyncSession, refresh_token: str) -> AuthTokens:
    return await token_service.rotate_refresh_token(db, refresh_token)


async def logout(db: AsyncSession, user_id: int, refresh_token: str | None = None) -> int:
    """Without a refresh token every session of the user is closed."""
    removed = await token_service.revoke_refresh_tokens(db, user_id, refresh_token)
    logger.info(
        "User logged out (%s)", "single session" if refresh_token else "all sessions",
        extra={"user_id": user_id},
    )
    return removed


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User")
    return user


async def search_users(db: AsyncSession, query: str, limit: int = 10) -> list[User]:
    # `%` and `_` in the query match themselves, not any character
    term = query.strip()
    result = await db.execute(
        select(User)
        .filter(or_(
            User.email.icontains(term, autoescape=True),
            User.username.icontains(term, autoescape=True),
        ))
        .order_by(User.username)
        .limit(limit)
    )
    return list(result.scalars().all())
