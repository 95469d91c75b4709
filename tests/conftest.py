"""
Shared fixtures.

Every test gets its own in-memory SQLite database (aiosqlite, StaticPool so
all sessions share the single connection). Service tests use `db` directly;
API tests go through `client`, which runs the FastAPI app in-process with the
`get_db` dependency pointed at the test database.
"""
import os

# Must be set before taskhub.config is imported
os.environ["database_url"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskhub.database import Base, get_db
from taskhub.main import app
from taskhub.models.project import Project, ProjectMember  # noqa: F401
from taskhub.models.tasks import Task  # noqa: F401
from taskhub.models.user import User, UserRole
from taskhub.utils.security import get_password_hash

PASSWORD = "password123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user row directly; returns the committed User."""
    counter = {"n": 0}

    async def _make_user(username: str | None = None, email: str | None = None) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            email=email or f"{username}@example.com",
            username=username,
            hashed_password=get_password_hash(PASSWORD),
            role=UserRole.USER,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


# ── API helpers ────────────────────────────────────────

async def register_and_login(client: AsyncClient, username: str) -> dict:
    """Returns {"user": ..., "tokens": ..., "headers": ...} for a fresh user."""
    email = f"{username}@example.com"
    response = await client.post("/api/auth/register", json={
        "email": email,
        "username": username,
        "password": PASSWORD,
    })
    assert response.status_code == 201, response.text

    response = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    data["headers"] = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
    return data


@pytest.fixture
def login(client):
    async def _login(username: str) -> dict:
        return await register_and_login(client, username)
    return _login
