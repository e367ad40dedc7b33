"""
main.py - Invisible Analytics FastAPI application entry point.

Start with: uvicorn analytics_api.main:app --port 4000
"""
import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics_api.config import settings
from analytics_api.errors import AnalyticsError

# ---------------------------------------------------------------------------
# Logging - configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan - startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Run Alembic migrations (skipped when RUN_MIGRATIONS=false)
      2. Create the Mistral client used for report enrichment (None without a key)
    Shutdown:
      1. Dispose the database engine
    """
    # --- 1. Database: run Alembic migrations ---
    if settings.run_migrations:
        package_dir = os.path.dirname(os.path.abspath(__file__))
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            capture_output=True,
            text=True,
            cwd=package_dir,
        )
        if result.returncode != 0:
            logger.error("Alembic migration failed:\n%s", result.stderr)
            raise RuntimeError(f"Alembic migration failed: {result.stderr}")
        msg = result.stdout.strip() or "No pending migrations"
        logger.info("Alembic: %s", msg)

    # --- 2. Mistral client - singleton for HTTP connection pool reuse ---
    if settings.mistral_api_key:
        from mistralai import Mistral

        app.state.mistral = Mistral(api_key=settings.mistral_api_key)
        logger.info("Mistral client initialized model=%s", settings.mistral_model)
    else:
        app.state.mistral = None
        logger.warning("MISTRAL_API_KEY not set - reports will not be enriched")

    logger.info("Invisible Analytics v%s starting up", settings.app_version)
    yield

    # --- Shutdown ---
    from analytics_api.database import async_engine

    await async_engine.dispose()
    logger.info("Invisible Analytics shutting down")


# ---------------------------------------------------------------------------
# FastAPI application instance
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Invisible Analytics API",
    version=settings.app_version,
    description=(
        "Collects session and interaction telemetry from tracked sites and serves "
        "aggregated, optionally LLM-summarized, usage reports."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error response helper
# ---------------------------------------------------------------------------
def _make_error_response(message: str, status_code: int = 500) -> JSONResponse:
    """Build the uniform {success: false, error} response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


# ---------------------------------------------------------------------------
# Global exception handlers - registered BEFORE routers
# ---------------------------------------------------------------------------
@app.exception_handler(AnalyticsError)
async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    """Domain errors raised by routes, store and report generator."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    return _make_error_response(exc.message, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Malformed JSON bodies and wrong field types are client errors: 400,
    reporting the first violation with a dot-notation field path.
    """
    errors = exc.errors()
    if not errors:
        return _make_error_response("Invalid request body", status_code=400)
    first = errors[0]
    field = ".".join(str(loc) for loc in first["loc"] if loc != "body")
    message = f"{field}: {first['msg']}" if field else first["msg"]
    return _make_error_response(message, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes, wrong methods and similar framework errors."""
    return _make_error_response(str(exc.detail), status_code=exc.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected errors.
    DEBUG=true  → includes exception type & message (dev only).
    DEBUG=false → fixed message; full traceback logged server-side only.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    if settings.debug:
        return _make_error_response(f"Internal server error: {type(exc).__name__}: {exc}")
    return _make_error_response("Internal server error")


# ---------------------------------------------------------------------------
# Health endpoints (no auth required)
# ---------------------------------------------------------------------------
@app.get("/", tags=["System"])
async def root() -> dict:
    return {"message": "Invisible Analytics API is running"}


@app.get("/api/health", tags=["System"])
async def health_check() -> dict:
    """Service health status for load balancers and the container HEALTHCHECK."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from analytics_api.accounts.routes import auth_router, projects_router  # noqa: E402
from analytics_api.collector.routes import router as collector_router  # noqa: E402
from analytics_api.reports.routes import router as reports_router  # noqa: E402

app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(collector_router)
app.include_router(reports_router)
