"""
routes.py - Ingestion HTTP endpoints.

POST /api/session  - register a client visit, returns the generated session id
POST /api/event    - append a batch of events to an existing session
POST /api/error    - log a client-side error report

Errors are raised as analytics_api.errors types; main.py renders them.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_api import store
from analytics_api.collector.schemas import (
    ClientErrorReport,
    EventBatchRequest,
    EventBatchResponse,
    SessionCreateRequest,
    SessionCreateResponse,
    TrackedEvent,
)
from analytics_api.database import get_db
from analytics_api.errors import InternalError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Collector"])


@router.post("/session", status_code=201, response_model=SessionCreateResponse)
async def create_session(
    body: SessionCreateRequest,
    x_api_key: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> SessionCreateResponse:
    """
    Create a new session for a client visit.

    anonymousId is required. metadata is stored as-is.
    When an X-API-Key header is sent, the session is attached to that project.
    """
    if not body.anonymous_id:
        raise ValidationError("anonymousId is required")

    project_id = None
    if x_api_key:
        project = await store.get_project_by_api_key(db, x_api_key)
        if project is None:
            raise NotFoundError("Project not found")
        project_id = project.id

    try:
        session = await store.create_session(
            db,
            body.anonymous_id,
            body.metadata,
            project_id=project_id,
            user_id=body.user_id,
            device=body.device,
            browser=body.browser,
            os=body.os,
        )
    except SQLAlchemyError as exc:
        logger.error("Failed to create session: %s", exc, exc_info=True)
        raise InternalError() from exc

    return SessionCreateResponse(id=session.id, anonymous_id=session.anonymous_id)


@router.post("/event", status_code=201, response_model=EventBatchResponse)
async def log_event(
    body: EventBatchRequest,
    db: AsyncSession = Depends(get_db),
) -> EventBatchResponse:
    """
    Append a batch of events to a session.

    Returns 404 for an unknown session regardless of the payload.
    The batch is all-or-nothing: one malformed event fails every event with a 500.
    """
    if not body.session_id:
        raise ValidationError("sessionId is required")

    session = await store.get_session(db, body.session_id)
    if session is None:
        raise NotFoundError("Session not found")

    events = [] if body.events is None else body.events
    if not isinstance(events, list):
        raise ValidationError("events must be an array")

    try:
        rows = [TrackedEvent.model_validate(event).to_row() for event in events]
        processed = await store.save_events(db, body.session_id, rows)
    except SchemaValidationError as exc:
        logger.error(
            "Rejected malformed event batch session_id=%s errors=%d",
            body.session_id, exc.error_count(),
        )
        raise InternalError() from exc
    except SQLAlchemyError as exc:
        logger.error("Failed to log events session_id=%s: %s", body.session_id, exc, exc_info=True)
        raise InternalError() from exc

    return EventBatchResponse(events_processed=processed, session_id=body.session_id)


@router.post("/error", status_code=202)
async def log_client_error(body: ClientErrorReport) -> dict:
    """Record a front-end error in the server log. Nothing is persisted."""
    logger.warning(
        "Client error reported session_id=%s url=%s message=%s",
        body.session_id, body.url, body.message,
    )
    return {"success": True}
