"""
schemas.py - Account and project Pydantic v2 data contracts.

Signup/login fields are Optional on purpose: routes.py raises the 400
ValidationError with the missing field's name.
"""
from typing import Optional

from pydantic import ConfigDict, Field

from analytics_api.schemas import CamelModel, UtcDatetime


class SignupRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(CamelModel):
    """Public user view. The password hash is never serialized."""
    id: str
    email: str
    name: Optional[str] = None
    created_at: UtcDatetime


class LoginResponse(CamelModel):
    success: bool = True
    user: UserResponse


class ProjectCreateRequest(CamelModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=255)


class ProjectResponse(CamelModel):
    id: str
    name: str
    owner_id: str
    api_key: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


__all__ = [
    "SignupRequest",
    "LoginRequest",
    "UserResponse",
    "LoginResponse",
    "ProjectCreateRequest",
    "ProjectResponse",
]
