from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from taskhub.config import settings


def async_database_url(raw_url: str) -> str:
    """`postgres://` and `postgresql://` URLs are switched to the asyncpg driver; others pass through."""
    url = make_url(raw_url)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+asyncpg")
    return url.render_as_string(hide_password=False)


def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True}
    # SQLite (tests, local runs) uses a single-connection pool without sizing knobs
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DB_POOL_SIZE
    return options


SQLALCHEMY_DATABASE_URL = async_database_url(settings.database_url)

engine = create_async_engine(SQLALCHEMY_DATABASE_URL, **_engine_options(SQLALCHEMY_DATABASE_URL))

# One session per request; services flush, routers commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

Base = declarative_base()

async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception:
            # Whatever the request flushed but never committed is discarded
            await db.rollback()
            raise


async def create_tables():
    # Import models so every table is registered on Base.metadata
    from taskhub.models import project, tasks, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
