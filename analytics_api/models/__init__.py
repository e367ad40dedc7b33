"""
models/__init__.py - imports all ORM models so Alembic's env.py
sees them via Base.metadata, and so string relationship targets resolve.
"""
from analytics_api.models.user import UserORM
from analytics_api.models.project import ProjectORM
from analytics_api.models.session import SessionORM
from analytics_api.models.event import EventORM
from analytics_api.models.report import ReportORM

__all__ = ["UserORM", "ProjectORM", "SessionORM", "EventORM", "ReportORM"]
