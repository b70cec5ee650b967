"""
Test infrastructure for the CMS API.

Strategy
--------
- SQLite in-memory via aiosqlite; StaticPool keeps every task on the
  single connection that owns the in-memory database.
- Foreign keys are switched on per connection so ON DELETE CASCADE
  behaves as it does on PostgreSQL.
- The app's get_db dependency is overridden to use the test session
  factory; tables are created before and dropped after each test.
- Redis is disabled by setting cache._redis = None; the CacheManager
  treats that as a permanent miss.  Tests that exercise the cache use
  the redis_cache fixture, which plugs in an in-memory fakeredis client.
"""
from datetime import datetime

import pytest_asyncio
from fakeredis import FakeAsyncRedis
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from cms.cache import cache
from cms.database import Base, get_db
from cms.main import app
from cms.middleware import install_query_counter
from cms.models import AccessToken, User

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            cache.discard_pending(session)
            await session.rollback()
            raise
        await cache.flush_pending(session)


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for tests that call services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx.AsyncClient wired to the FastAPI app via ASGITransport, Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _seed_user_with_token(
    name: str = "Token Owner",
    email: str = "owner@example.com",
    token: str = "tok-1",
    expires_at: datetime | None = None,
) -> int:
    """Insert a user and one access token outside any request; return the user id."""
    async with async_session_test() as session:
        user = User(name=name, email=email)
        session.add(user)
        await session.flush()
        session.add(AccessToken(user_id=user.id, token=token, expires_at=expires_at))
        await session.commit()
        return user.id


@pytest_asyncio.fixture
async def seed_token():
    """Factory fixture: await seed_token(token=..., expires_at=...) -> user id."""
    return _seed_user_with_token


@pytest_asyncio.fixture
async def auth_headers() -> dict[str, str]:
    """Authorization header for a freshly seeded, non-expiring token."""
    await _seed_user_with_token(name="Gatekeeper", email="gate@example.com", token="gate-token")
    return {"Authorization": "Bearer gate-token"}


@pytest_asyncio.fixture
async def redis_cache(async_client: AsyncClient):
    """In-memory Redis wired into the CacheManager for the duration of one test."""
    client = FakeAsyncRedis(decode_responses=True)
    cache._redis = client
    yield client
    cache._redis = None
    await client.flushall()
    await client.aclose()
