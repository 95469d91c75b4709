"""
Password hashing (bcrypt) and JWT signing/decoding (python-jose).

Access and refresh tokens are signed with different secrets so that one can
never be accepted in place of the other.
"""
import hashlib
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from taskhub.config import settings

# bcrypt only looks at the first 72 bytes of the input
BCRYPT_MAX_BYTES = 72


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    encoded = plain_password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))


def _encode(data: dict, secret: str, token_type: str, expires_delta: timedelta) -> tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    to_encode = data.copy()
    to_encode.update({
        "type": token_type,
        "iat": now,
        "exp": expire,
        # Two tokens signed in the same second for the same user must still differ
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM), expire


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token, _ = _encode(data, settings.JWT_SECRET, "access", expires_delta)
    return token


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> tuple[str, datetime]:
    """Returns the signed token and its expiry (stored alongside the token hash)."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, settings.JWT_REFRESH_SECRET, "refresh", expires_delta)


def decode_access_token(token: str) -> dict:
    """Raises jose.JWTError (ExpiredSignatureError included) on any failure."""
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Expected an access token")
    return payload


def decode_refresh_token(token: str) -> dict:
    payload = jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "refresh":
        raise JWTError("Expected a refresh token")
    return payload


def hash_token(token: str) -> str:
    """SHA-256 of a refresh token; only the hash is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
