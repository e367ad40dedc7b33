"""
models/report.py - SQLAlchemy ORM model for generated analytics reports.

Table: reports
Append-only snapshot log. The latest report is the row with max(created_at);
reports are never updated in place, a stale one is superseded by a new row.

data:    the raw aggregate over all sessions and events
summary: structured LLM summary, NULL when enrichment is disabled or failed
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from analytics_api.database import Base, JSONType


class ReportORM(Base):
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    summary: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
