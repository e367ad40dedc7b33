"""
routes.py - Account and project HTTP endpoints.

POST /api/auth/signup     - register a user (password stored as PBKDF2 hash)
POST /api/auth/login      - look up a user by email and check the password
GET  /api/auth/me         - user named by the X-User-Id header
POST /api/projects        - create a project (with API key) for X-User-Id
GET  /api/projects        - list X-User-Id's projects
GET  /api/projects/{id}   - fetch one project

No tokens or server-side sessions: login is a record lookup, and callers
identify themselves with X-User-Id.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_api import store
from analytics_api.accounts.passwords import hash_password, verify_password
from analytics_api.accounts.schemas import (
    LoginRequest,
    LoginResponse,
    ProjectCreateRequest,
    ProjectResponse,
    SignupRequest,
    UserResponse,
)
from analytics_api.database import get_db
from analytics_api.errors import NotFoundError, UnauthorizedError, ValidationError
from analytics_api.models.user import UserORM

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
projects_router = APIRouter(prefix="/api/projects", tags=["Projects"])


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> UserORM:
    """Resolve the X-User-Id header to a user row (401 missing, 404 unknown)."""
    if not x_user_id:
        raise UnauthorizedError("X-User-Id header is required")
    user = await store.get_user(db, x_user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@auth_router.post("/signup", status_code=201, response_model=UserResponse)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    if not body.email:
        raise ValidationError("email is required")
    if not body.password:
        raise ValidationError("password is required")

    email = body.email.strip().lower()
    user = await store.create_user(db, email, hash_password(body.password), body.name)
    return UserResponse.model_validate(user)


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    if not body.email or not body.password:
        raise ValidationError("email and password are required")

    user = await store.get_user_by_email(db, body.email.strip().lower())
    if user is None or not verify_password(body.password, user.password):
        logger.info("Rejected login attempt")
        raise UnauthorizedError("Invalid email or password")

    logger.info("User logged in user_id=%s", user.id)
    return LoginResponse(user=UserResponse.model_validate(user))


@auth_router.get("/me", response_model=UserResponse)
async def me(user: UserORM = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@projects_router.post("", status_code=201, response_model=ProjectResponse)
async def create_project(
    body: ProjectCreateRequest,
    user: UserORM = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    if not body.name or not body.name.strip():
        raise ValidationError("name is required")
    project = await store.create_project(db, user.id, body.name.strip())
    return ProjectResponse.model_validate(project)


@projects_router.get("", response_model=list[ProjectResponse])
async def list_projects(
    user: UserORM = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    projects = await store.list_projects(db, user.id)
    return [ProjectResponse.model_validate(p) for p in projects]


@projects_router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await store.get_project(db, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return ProjectResponse.model_validate(project)
