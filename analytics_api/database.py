"""
database.py - Async engine, session factory and the get_db request dependency.

Routes receive an AsyncSession through Depends(get_db); store.py and the
report generator only ever work on the session they are handed.
"""
from collections.abc import AsyncGenerator

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from analytics_api.config import settings


class Base(DeclarativeBase):
    """Declarative base for users, projects, sessions, events and reports."""
    pass


# Opaque client blobs (session/event metadata, report payloads):
# JSONB on PostgreSQL, plain JSON on SQLite
JSONType = JSON().with_variant(JSONB(), "postgresql")


# Report generation commits its read transaction before the Mistral call,
# so slow enrichment does not pin connections from this pool.
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

# expire_on_commit=False: sessions and events loaded for a report stay
# readable after the mid-request commit in generate_report()
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request, committed when the handler returns.

    Any exception rolls the open transaction back, which is what makes an
    event batch all-or-nothing.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
