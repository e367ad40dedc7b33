"""
schemas.py - Ingestion Pydantic v2 data contracts.

Defines:
  - SessionCreateRequest / SessionCreateResponse   (POST /api/session)
  - TrackedEvent                                   (one element of an event batch)
  - EventBatchRequest / EventBatchResponse         (POST /api/event)
  - ClientErrorReport                              (POST /api/error)

Required-field checks (anonymousId, sessionId) happen in routes.py so that a
missing field is reported as a 400 with the field name, not a schema error.
Event objects are validated in routes.py as well: a malformed event fails the
whole batch with a 500, matching the all-or-nothing bulk insert.
"""
from typing import Any, Optional

from pydantic import ConfigDict, Field

from analytics_api.schemas import CamelModel


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class SessionCreateRequest(CamelModel):
    """
    Incoming session from a tracker.

    metadata is opaque - stored verbatim and echoed into reports.
    The strict fields (userId, device, browser, os) are optional.
    """
    model_config = ConfigDict(extra="ignore")

    anonymous_id: Optional[str] = None
    metadata: Any = None
    user_id: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None


class SessionCreateResponse(CamelModel):
    id: str
    anonymous_id: Optional[str]
    success: bool = True


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class TrackedEvent(CamelModel):
    """
    A single interaction event as sent by the tracker.

    type: open tag - "pageview", "click", "scroll", "hover" from the browser
          tracker; CLICK / SCROLL / HOVER / NAVIGATE from strict clients.
    metadata / data: page, viewport and device context blobs, stored verbatim.
    Unknown keys are rejected so a malformed batch never half-persists.
    """
    model_config = ConfigDict(extra="forbid")

    type: str = Field(..., min_length=1, max_length=50)
    element: Optional[str] = Field(default=None, max_length=512)
    x: Optional[int] = None
    y: Optional[int] = None
    scroll_y: Optional[int] = None
    metadata: Any = None
    data: Any = None

    def to_row(self) -> dict:
        """Column-keyed kwargs for EventORM (session_id is stamped by the store)."""
        return {
            "type": self.type,
            "element": self.element,
            "x": self.x,
            "y": self.y,
            "scroll_y": self.scroll_y,
            "event_metadata": self.metadata,
            "data": self.data,
        }


class EventBatchRequest(CamelModel):
    """
    Batch of raw event objects for one session.
    events stays untyped here, so the body always parses and the route can
    answer 404 for an unknown session before looking at the payload. The route
    checks that events is a list and validates each element as a TrackedEvent,
    so a bad element is an internal batch failure.
    """
    model_config = ConfigDict(extra="ignore")

    session_id: Optional[str] = None
    events: Any = None


class EventBatchResponse(CamelModel):
    success: bool = True
    events_processed: int
    session_id: str


# ---------------------------------------------------------------------------
# Client error reports
# ---------------------------------------------------------------------------

class ClientErrorReport(CamelModel):
    """Front-end error report. Only logged, never persisted."""
    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None
    session_id: Optional[str] = None
    url: Optional[str] = None


__all__ = [
    "SessionCreateRequest",
    "SessionCreateResponse",
    "TrackedEvent",
    "EventBatchRequest",
    "EventBatchResponse",
    "ClientErrorReport",
]
