"""
Access/refresh token lifecycle.

Access tokens are stateless: signature and expiry are all that is checked, so
they cannot be revoked before they expire. Refresh tokens are signed with a
separate secret AND persisted (as a SHA-256 hash); a refresh token is only
accepted when both the signature is valid and an unexpired row exists. That
row is what makes logout and single-use rotation possible.
"""
import logging
from datetime import datetime, timezone

from jose import ExpiredSignatureError, JWTError
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskhub.models.user import RefreshToken, User
from taskhub.schemas.user import AuthTokens, TokenClaims
from taskhub.utils.errors import AuthenticationError
from taskhub.utils.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_token,
)

logger = logging.getLogger(__name__)

# Every refresh failure looks the same to the caller
INVALID_REFRESH_TOKEN = "Invalid refresh token"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _claims_for(user: User) -> dict:
    return {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
    }


async def issue_tokens(db: AsyncSession, user: User) -> AuthTokens:
    """Sign a new access/refresh pair and persist the refresh token."""
    claims = _claims_for(user)
    access_token = create_access_token(claims)
    refresh_token, expires_at = create_refresh_token(claims)

    db.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(refresh_token),
        expires_at=expires_at,
    ))
    await db.flush()
    return AuthTokens(access_token=access_token, refresh_token=refresh_token)


def verify_access_token(token: str) -> TokenClaims:
    try:
        payload = decode_access_token(token)
        return TokenClaims(id=payload["id"], email=payload["email"], role=payload["role"])
    except ExpiredSignatureError:
        logger.warning("Access token expired")
        raise AuthenticationError("Token expired")
    except (JWTError, KeyError, ValueError) as e:
        logger.warning("Invalid access token: %s", e)
        raise AuthenticationError("Invalid token")


def _reject(reason: str, **extra) -> AuthenticationError:
    logger.warning("Refresh token rejected", extra={"reason": reason, **extra})
    return AuthenticationError(INVALID_REFRESH_TOKEN)


async def _load_valid_refresh_token(db: AsyncSession, refresh_token: str) -> tuple[dict, RefreshToken]:
    """
    Check the four ways a refresh token can be bad, in order:
    malformed or wrongly signed, expired by its own `exp`, missing from the
    store (revoked or already rotated), and stored but past `expires_at`.
    """
    try:
        payload = decode_refresh_token(refresh_token)
    except ExpiredSignatureError:
        raise _reject("signature_expired")
    except JWTError:
        raise _reject("malformed")

    result = await db.execute(
        select(RefreshToken).filter(RefreshToken.token_hash == hash_token(refresh_token))
    )
    stored = result.scalars().first()
    if stored is None:
        raise _reject("not_in_store", user_id=payload.get("id"))

    if _as_utc(stored.expires_at) <= datetime.now(timezone.utc):
        raise _reject("store_expired", user_id=stored.user_id)

    return payload, stored


async def rotate_refresh_token(db: AsyncSession, refresh_token: str) -> AuthTokens:
    """
    Exchange a refresh token for a new pair. Single use: the old row is
    deleted, so the old token string is dead even before its own expiry.
    """
    payload, stored = await _load_valid_refresh_token(db, refresh_token)

    user = await db.get(User, stored.user_id)
    if user is None or user.id != payload.get("id"):
        raise _reject("user_mismatch", user_id=stored.user_id)

    # Conditional delete: if a concurrent rotation already consumed this row,
    # nothing is deleted and this rotation loses.
    result = await db.execute(
        delete(RefreshToken)
        .where(RefreshToken.id == stored.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _reject("already_rotated", user_id=user.id)
    db.expunge(stored)

    tokens = await issue_tokens(db, user)
    logger.info("Token refreshed", extra={"user_id": user.id})
    return tokens


async def revoke_refresh_tokens(db: AsyncSession, user_id: int, refresh_token: str | None = None) -> int:
    """Delete one of the user's refresh tokens, or all of them when no token is given."""
    stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
    if refresh_token is not None:
        stmt = stmt.where(RefreshToken.token_hash == hash_token(refresh_token))

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount
