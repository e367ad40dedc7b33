"""
generator.py - Report aggregation and freshness policy.

The report log is append-only: get_latest_report() serves the newest row
while it is younger than the freshness threshold, and otherwise appends a
freshly generated one. There is no in-process cache and no locking; two
concurrent stale reads may each append a report, which the log tolerates.

Flow of generate_report():
  1. Load every session with its events (store.list_sessions_with_events)
  2. Per session: totalEvents + eventsByType counts
  3. Assemble {totalSessions, sessions: [...]}, then commit the read transaction
  4. Optional Mistral enrichment (never fatal - None on any failure)
  5. Append the report row, only after 1-4 completed
"""
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from mistralai import Mistral
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_api import store
from analytics_api.config import settings
from analytics_api.errors import InternalError
from analytics_api.models.report import ReportORM
from analytics_api.models.session import SessionORM
from analytics_api.reports.llm_service import summarize_report

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Aggregation (pure)
# ---------------------------------------------------------------------------

def summarize_session(session: SessionORM) -> dict[str, Any]:
    """Per-session block of the report: identity, metadata, raw events, counts."""
    events = session.events
    return {
        "id": session.id,
        "anonymousId": session.anonymous_id,
        "metadata": session.session_metadata,
        "data": [event.to_dict() for event in events],
        "totalEvents": len(events),
        "eventsByType": dict(Counter(event.type for event in events)),
    }


def build_report_data(sessions: list[SessionORM]) -> dict[str, Any]:
    return {
        "totalSessions": len(sessions),
        "sessions": [summarize_session(session) for session in sessions],
    }


def minutes_since(created_at: datetime, now: Optional[datetime] = None) -> float:
    """
    Elapsed minutes between created_at and now.
    Naive timestamps (SQLite drops tzinfo) are read as UTC.
    """
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - created_at).total_seconds() / 60


def is_stale(
    report: ReportORM,
    freshness_minutes: float,
    now: Optional[datetime] = None,
) -> bool:
    return minutes_since(report.created_at, now) > freshness_minutes


# ---------------------------------------------------------------------------
# Generation + freshness policy
# ---------------------------------------------------------------------------

async def generate_report(
    db: AsyncSession,
    client: Optional[Mistral] = None,
) -> ReportORM:
    """
    Build a new report over all sessions and append it to the log.

    client=None skips enrichment. The read transaction is committed before
    the Mistral round-trip, so no pooled connection is held while it runs;
    the report row is written in a fresh transaction afterwards.
    Persistence failures raise InternalError.
    """
    try:
        sessions = await store.list_sessions_with_events(db)
        report_data = build_report_data(sessions)
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to load sessions for report: %s", exc, exc_info=True)
        raise InternalError() from exc

    logger.info(
        "Report aggregated sessions=%d events=%d",
        report_data["totalSessions"],
        sum(s["totalEvents"] for s in report_data["sessions"]),
    )

    summary = None
    if client is not None:
        summary = await summarize_report(client, report_data)

    try:
        return await store.save_report(db, report_data, summary)
    except SQLAlchemyError as exc:
        logger.error("Failed to save report: %s", exc, exc_info=True)
        raise InternalError() from exc


async def get_latest_report(
    db: AsyncSession,
    client: Optional[Mistral] = None,
    freshness_minutes: Optional[float] = None,
    now: Optional[datetime] = None,
) -> ReportORM:
    """
    Serve the newest report, regenerating when none exists or it is older
    than freshness_minutes (settings.report_freshness_minutes when omitted).
    Never returns None.
    """
    if freshness_minutes is None:
        freshness_minutes = settings.report_freshness_minutes

    try:
        latest = await store.get_latest_report(db)
    except SQLAlchemyError as exc:
        logger.error("Failed to read latest report: %s", exc, exc_info=True)
        raise InternalError() from exc

    if latest is None:
        logger.info("No report in the log yet; generating the first one")
        return await generate_report(db, client)

    if is_stale(latest, freshness_minutes, now):
        logger.info(
            "Report report_id=%s is stale (threshold=%.1f min); regenerating",
            latest.id, freshness_minutes,
        )
        return await generate_report(db, client)

    logger.info("Serving cached report report_id=%s", latest.id)
    return latest
