"""
models/session.py - SQLAlchemy ORM model for client visits.

Table: sessions
One row per client visit. Created once, never mutated, never deleted here.

Two ingestion shapes share this table:
  - anonymous:  anonymous_id + free-form metadata blob (stored verbatim)
  - strict:     project_id + optional user_id / device / browser / os
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from analytics_api.database import Base, JSONType


class SessionORM(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    project_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    anonymous_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Client-generated visitor identifier",
    )
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    session_metadata: Mapped[Optional[Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        comment="Opaque client metadata, stored verbatim",
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    device: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    project: Mapped[Optional["ProjectORM"]] = relationship(back_populates="sessions")  # noqa: F821
    events: Mapped[list["EventORM"]] = relationship(  # noqa: F821
        back_populates="session",
        order_by="[EventORM.created_at, EventORM.batch_index, EventORM.id]",
    )
