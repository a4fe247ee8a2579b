"""
Test infrastructure for the Conduit API.

Strategy
--------
- SQLite via aiosqlite removes the need for a running Postgres instance in
  CI, keeping the suite fast and self-contained.
- Each test gets its own database *file* under ``tmp_path`` rather than an
  in-memory database: separate pooled connections must see the same data
  while holding independent transactions, which is exactly what the
  transaction and isolation tests exercise.
- The app's ``get_session`` dependency is overridden so every test-time
  request runs against the test engine through a root ``Session``.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager already handles a None client gracefully, so tests exercise
  the real service logic without any Redis infrastructure.
- bcrypt runs at its minimum cost factor so registration stays cheap.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from conduit.cache import cache
from conduit.config import settings
from conduit.database import get_session
from conduit.db import Session
from conduit.main import app
from conduit.middleware import install_query_counter
from conduit.models import metadata
from conduit.security import user_cache

settings.BCRYPT_ROUNDS = 4


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh file-backed SQLite database with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'conduit.db'}")
    install_query_counter(engine)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> Session:
    """Root session over the test engine, configured like the production one."""
    return Session(engine, timeout=settings.QUERY_TIMEOUT_SECONDS, metadata=metadata)


@pytest_asyncio.fixture
async def async_client(session: Session) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    The authenticated-user cache is cleared so users resolved in a previous
    test's database never leak into this one.
    """
    app.dependency_overrides[get_session] = lambda: session
    cache._redis = None
    user_cache.clear()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    user_cache.clear()

