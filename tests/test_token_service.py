from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, func, update
from sqlalchemy.future import select

from taskhub.models.user import RefreshToken
from taskhub.services import tokens
from taskhub.utils.errors import AuthenticationError
from taskhub.utils.security import create_access_token, create_refresh_token, hash_token


async def _token_count(db, user_id):
    result = await db.execute(select(func.count(RefreshToken.id)).filter(RefreshToken.user_id == user_id))
    return result.scalar_one()


def _claims(user):
    return {"sub": str(user.id), "id": user.id, "email": user.email, "role": "USER"}


# ── issue / verify ─────────────────────────────────────

async def test_issue_persists_only_the_refresh_token_hash(db, make_user):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)

    result = await db.execute(select(RefreshToken).filter(RefreshToken.user_id == user.id))
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].token_hash == hash_token(pair.refresh_token)
    assert rows[0].token_hash != pair.refresh_token


async def test_tokens_issued_back_to_back_are_distinct(db, make_user):
    user = await make_user()
    first = await tokens.issue_tokens(db, user)
    second = await tokens.issue_tokens(db, user)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token
    assert await _token_count(db, user.id) == 2


async def test_verify_access_token_returns_claims(db, make_user):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)

    claims = tokens.verify_access_token(pair.access_token)
    assert claims.id == user.id
    assert claims.email == user.email
    assert claims.role == "USER"


async def test_refresh_token_is_not_an_access_token(db, make_user):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)
    with pytest.raises(AuthenticationError, match="Invalid token"):
        tokens.verify_access_token(pair.refresh_token)


def test_expired_access_token():
    token = create_access_token({"id": 1, "email": "a@example.com", "role": "USER"}, timedelta(seconds=-5))
    with pytest.raises(AuthenticationError, match="Token expired"):
        tokens.verify_access_token(token)


def test_garbage_access_token():
    with pytest.raises(AuthenticationError, match="Invalid token"):
        tokens.verify_access_token("not-a-token")


# ── rotate ─────────────────────────────────────────────

async def test_rotate_replaces_the_stored_token(db, make_user):
    user = await make_user()
    old = await tokens.issue_tokens(db, user)

    new = await tokens.rotate_refresh_token(db, old.refresh_token)

    assert new.refresh_token != old.refresh_token
    assert await _token_count(db, user.id) == 1
    result = await db.execute(select(RefreshToken.token_hash).filter(RefreshToken.user_id == user.id))
    assert result.scalar_one() == hash_token(new.refresh_token)
    assert tokens.verify_access_token(new.access_token).id == user.id


async def test_rotated_token_cannot_be_replayed(db, make_user):
    user = await make_user()
    old = await tokens.issue_tokens(db, user)
    new = await tokens.rotate_refresh_token(db, old.refresh_token)

    with pytest.raises(AuthenticationError, match="Invalid refresh token"):
        await tokens.rotate_refresh_token(db, old.refresh_token)

    # the replacement is unaffected by the failed replay
    again = await tokens.rotate_refresh_token(db, new.refresh_token)
    assert again.refresh_token != new.refresh_token


async def test_malformed_refresh_token(db):
    with pytest.raises(AuthenticationError) as exc_info:
        await tokens.rotate_refresh_token(db, "definitely.not.jwt")
    assert exc_info.value.message == tokens.INVALID_REFRESH_TOKEN


async def test_access_token_rejected_as_refresh_token(db, make_user):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)
    with pytest.raises(AuthenticationError) as exc_info:
        await tokens.rotate_refresh_token(db, pair.access_token)
    assert exc_info.value.message == tokens.INVALID_REFRESH_TOKEN


async def test_signature_expired_refresh_token_even_if_stored(db, make_user):
    user = await make_user()
    token, _ = create_refresh_token(_claims(user), timedelta(seconds=-5))
    db.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
    ))
    await db.flush()

    with pytest.raises(AuthenticationError) as exc_info:
        await tokens.rotate_refresh_token(db, token)
    assert exc_info.value.message == tokens.INVALID_REFRESH_TOKEN


async def test_validly_signed_but_unknown_refresh_token(db, make_user):
    user = await make_user()
    token, _ = create_refresh_token(_claims(user))

    with pytest.raises(AuthenticationError) as exc_info:
        await tokens.rotate_refresh_token(db, token)
    assert exc_info.value.message == tokens.INVALID_REFRESH_TOKEN


async def test_stored_row_past_expiry_rejects_valid_signature(db, make_user):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(AuthenticationError) as exc_info:
        await tokens.rotate_refresh_token(db, pair.refresh_token)
    assert exc_info.value.message == tokens.INVALID_REFRESH_TOKEN


async def test_concurrent_rotation_loses_when_row_already_consumed(db, make_user, monkeypatch):
    user = await make_user()
    pair = await tokens.issue_tokens(db, user)

    # Both rotations passed the existence check; the other one deleted the row first
    payload, stored = await tokens._load_valid_refresh_token(db, pair.refresh_token)
    await db.execute(
        delete(RefreshToken)
        .where(RefreshToken.id == stored.id)
        .execution_options(synchronize_session=False)
    )

    async def stale_load(_db, _token):
        return payload, stored

    monkeypatch.setattr(tokens, "_load_valid_refresh_token", stale_load)

    with pytest.raises(AuthenticationError, match="Invalid refresh token"):
        await tokens.rotate_refresh_token(db, pair.refresh_token)
    assert await _token_count(db, user.id) == 0


# ── revoke ─────────────────────────────────────────────

async def test_revoke_single_session(db, make_user):
    user = await make_user()
    laptop = await tokens.issue_tokens(db, user)
    phone = await tokens.issue_tokens(db, user)

    removed = await tokens.revoke_refresh_tokens(db, user.id, laptop.refresh_token)

    assert removed == 1
    with pytest.raises(AuthenticationError):
        await tokens.rotate_refresh_token(db, laptop.refresh_token)
    await tokens.rotate_refresh_token(db, phone.refresh_token)


async def test_revoke_all_sessions(db, make_user):
    user = await make_user()
    first = await tokens.issue_tokens(db, user)
    second = await tokens.issue_tokens(db, user)

    removed = await tokens.revoke_refresh_tokens(db, user.id)

    assert removed == 2
    for pair in (first, second):
        with pytest.raises(AuthenticationError):
            await tokens.rotate_refresh_token(db, pair.refresh_token)


async def test_revoke_ignores_other_users_tokens(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    bobs = await tokens.issue_tokens(db, bob)

    assert await tokens.revoke_refresh_tokens(db, alice.id, bobs.refresh_token) == 0
    assert await tokens.revoke_refresh_tokens(db, alice.id) == 0
    assert await _token_count(db, bob.id) == 1
