"""
store.py - Data access facade for the collector.

Provides a consistent, high-level API for persisting and retrieving rows.
All routes and the report generator use these functions - nothing else touches
SQLAlchemy queries directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries
  - flush() only; the get_db() dependency owns commit / rollback
  - Logs identifiers and counts only, never metadata payloads or passwords
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from analytics_api.errors import ConflictError
from analytics_api.models.event import EventORM
from analytics_api.models.project import ProjectORM
from analytics_api.models.report import ReportORM
from analytics_api.models.session import SessionORM
from analytics_api.models.user import UserORM

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session operations
# ---------------------------------------------------------------------------

async def create_session(
    db: AsyncSession,
    anonymous_id: Optional[str],
    metadata: Any = None,
    *,
    project_id: Optional[str] = None,
    user_id: Optional[str] = None,
    device: Optional[str] = None,
    browser: Optional[str] = None,
    os: Optional[str] = None,
) -> SessionORM:
    """Insert a new session row with a generated id. metadata is stored verbatim."""
    orm = SessionORM(
        anonymous_id=anonymous_id,
        session_metadata=metadata,
        project_id=project_id,
        user_id=user_id,
        device=device,
        browser=browser,
        os=os,
    )
    db.add(orm)
    await db.flush()
    logger.info("Created session session_id=%s project_id=%s", orm.id, project_id)
    return orm


async def get_session(db: AsyncSession, session_id: str) -> Optional[SessionORM]:
    """Return the session or None (caller raises 404)."""
    result = await db.execute(select(SessionORM).where(SessionORM.id == session_id))
    return result.scalar_one_or_none()


async def list_sessions_with_events(db: AsyncSession) -> list[SessionORM]:
    """
    Load every session together with all of its events.
    Full fan-out, no pagination - reports cover the entire history.
    populate_existing reloads event collections already held by this session.
    """
    result = await db.execute(
        select(SessionORM)
        .options(selectinload(SessionORM.events))
        .order_by(SessionORM.started_at.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Event operations
# ---------------------------------------------------------------------------

async def save_events(
    db: AsyncSession,
    session_id: str,
    events: list[dict],
) -> int:
    """
    Bulk-insert events for one session, each stamped with session_id.

    events are column-keyed dicts (type, element, x, y, scroll_y,
    event_metadata, data). The whole batch shares one created_at and keeps
    its payload order in batch_index. The batch lands in a single flush; if
    it fails, the request transaction rolls back and no event of the batch
    is kept. Returns the number of rows inserted.
    """
    received_at = datetime.now(timezone.utc)
    rows = [
        EventORM(session_id=session_id, created_at=received_at, batch_index=index, **event)
        for index, event in enumerate(events)
    ]
    db.add_all(rows)
    await db.flush()
    logger.info("Saved events session_id=%s count=%d", session_id, len(rows))
    return len(rows)


# ---------------------------------------------------------------------------
# Report operations
# ---------------------------------------------------------------------------

async def get_latest_report(db: AsyncSession) -> Optional[ReportORM]:
    """Most recently created report, or None when the log is empty."""
    result = await db.execute(
        select(ReportORM).order_by(ReportORM.created_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def save_report(
    db: AsyncSession,
    data: dict,
    summary: Optional[dict] = None,
) -> ReportORM:
    """Append a new report to the log."""
    orm = ReportORM(data=data, summary=summary)
    db.add(orm)
    await db.flush()
    logger.info("Saved report report_id=%s enriched=%s", orm.id, summary is not None)
    return orm


# ---------------------------------------------------------------------------
# User operations
# ---------------------------------------------------------------------------

async def create_user(
    db: AsyncSession,
    email: str,
    password_hash: str,
    name: Optional[str] = None,
) -> UserORM:
    """
    Insert a user. Raises ConflictError when the email is already registered
    (checked up front, and again by the unique constraint on flush).
    """
    if await get_user_by_email(db, email) is not None:
        raise ConflictError("Email is already registered")

    orm = UserORM(email=email, password=password_hash, name=name)
    db.add(orm)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("Email is already registered") from exc
    logger.info("Created user user_id=%s", orm.id)
    return orm


async def get_user(db: AsyncSession, user_id: str) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.email == email))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Project operations
# ---------------------------------------------------------------------------

async def create_project(db: AsyncSession, owner_id: str, name: str) -> ProjectORM:
    """Insert a project with a freshly generated API key."""
    orm = ProjectORM(name=name, owner_id=owner_id, api_key=secrets.token_urlsafe(32))
    db.add(orm)
    await db.flush()
    logger.info("Created project project_id=%s owner_id=%s", orm.id, owner_id)
    return orm


async def list_projects(db: AsyncSession, owner_id: str) -> list[ProjectORM]:
    """All projects of one owner, newest first."""
    result = await db.execute(
        select(ProjectORM)
        .where(ProjectORM.owner_id == owner_id)
        .order_by(ProjectORM.created_at.desc())
    )
    return list(result.scalars().all())


async def get_project(db: AsyncSession, project_id: str) -> Optional[ProjectORM]:
    result = await db.execute(select(ProjectORM).where(ProjectORM.id == project_id))
    return result.scalar_one_or_none()


async def get_project_by_api_key(db: AsyncSession, api_key: str) -> Optional[ProjectORM]:
    result = await db.execute(select(ProjectORM).where(ProjectORM.api_key == api_key))
    return result.scalar_one_or_none()
