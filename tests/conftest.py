"""Test fixtures: a fresh database per test, real auth pipeline.

Tests run against in-memory SQLite through aiosqlite by default. A
StaticPool keeps the single in-memory connection alive for the whole
test, so the schema created up front is visible to every session.
Set USERHUB_TEST_DATABASE_URL to run the same suite against Postgres.

Settings are read at import time, so the env vars below must be set
before anything from userhub is imported.
"""

import os

os.environ.setdefault("USERHUB_BCRYPT_ROUNDS", "4")
os.environ.setdefault("USERHUB_JWT_SECRET", "test-secret-do-not-use-in-production")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from userhub.db.engine import get_db
from userhub.db.models import Base
from userhub.main import app

TEST_DB_URL = os.environ.get(
    "USERHUB_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)

STRONG_PASSWORD = "Passw0rd!"


def _make_engine():
    if TEST_DB_URL.startswith("sqlite"):
        return create_async_engine(
            TEST_DB_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DB_URL)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a freshly created schema."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with get_db pointed at the test session.

    Auth is NOT overridden: protected routes need a real token from
    POST /users or POST /auth/login.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def register(client):
    """Create a user through the API; returns the response body."""

    async def _register(email, password=STRONG_PASSWORD, permissions=None):
        body = {"email": email, "password": password}
        if permissions is not None:
            body["permissions"] = permissions
        r = await client.post("/api/v1/users", json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _register


@pytest.fixture()
def bearer():
    """Build an Authorization header for a token."""
    return lambda token: {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def empty_engine():
    """An engine on a database with no tables yet."""
    engine = _make_engine()
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
