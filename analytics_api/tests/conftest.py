"""
Test configuration for the Invisible Analytics collector.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool,
foreign keys enforced) with the full schema created from Base.metadata.
HTTP tests drive the ASGI app through httpx with get_db overridden, so no
PostgreSQL, migrations or live server are needed. The Mistral client is
always a mock.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import analytics_api.models  # noqa: F401  (registers tables on Base.metadata)
from analytics_api.database import Base, get_db
from analytics_api.main import app
from analytics_api.reports.routes import get_mistral_client


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for calling store / generator functions directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def override_db(session_factory):
    """Point the app's get_db dependency at the test database."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_mistral_client] = lambda: None
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(override_db):
    """Async httpx client using ASGI transport - no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def make_mistral():
    """
    Factory for a mock Mistral client.

    make_mistral(content="...")  → chat.complete_async returns that message text
    make_mistral(error=exc)      → chat.complete_async raises exc
    """

    def _make(content=None, error=None) -> MagicMock:
        mock = MagicMock()
        if error is not None:
            mock.chat.complete_async = AsyncMock(side_effect=error)
            return mock
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        mock.chat.complete_async = AsyncMock(return_value=response)
        return mock

    return _make
