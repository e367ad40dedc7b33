"""
models/event.py - SQLAlchemy ORM model for interaction events.

Table: events
Append-only log, one row per user interaction, owned by exactly one session.

type is an open string: trackers send "pageview" / "click" / "scroll" / "hover",
the strict schema uses CLICK / SCROLL / HOVER / NAVIGATE. Both are accepted.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from analytics_api.database import Base, JSONType


def _utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; every stored timestamp is UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class EventORM(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    element: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    x: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    y: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    scroll_y: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    event_metadata: Mapped[Optional[Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        comment="Page / viewport context captured by the tracker",
    )
    data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    batch_index: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Position within the ingested batch; orders events sharing created_at",
    )

    session: Mapped["SessionORM"] = relationship(back_populates="events")  # noqa: F821

    def to_dict(self) -> dict:
        """Raw event shape embedded in report payloads."""
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "type": self.type,
            "element": self.element,
            "x": self.x,
            "y": self.y,
            "scrollY": self.scroll_y,
            "metadata": self.event_metadata,
            "data": self.data,
            "createdAt": _utc(self.created_at).isoformat(),
        }
