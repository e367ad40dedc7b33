"""
models/project.py - SQLAlchemy ORM model for tracked projects.

Table: projects
A project owns its sessions; clients identify it with the unique api_key.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from analytics_api.database import Base


class ProjectORM(Base):
    """
    ORM model for a project.

    api_key: generated at creation (secrets.token_urlsafe), unique across projects.
             Sent by tracking clients in the X-API-Key header.
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    api_key: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    owner: Mapped["UserORM"] = relationship(back_populates="projects")  # noqa: F821
    sessions: Mapped[list["SessionORM"]] = relationship(back_populates="project")  # noqa: F821
