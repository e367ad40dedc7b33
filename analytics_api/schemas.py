"""
schemas.py - Shared Pydantic v2 building blocks for request/response contracts.

Tracker clients speak camelCase JSON (anonymousId, sessionId, scrollY);
Python code uses snake_case attribute names. CamelModel bridges the two:
requests accept either spelling, responses serialize camelCase.
"""
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    """Timestamps are stored in UTC; some drivers hand them back naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


__all__ = ["CamelModel", "UtcDatetime"]
