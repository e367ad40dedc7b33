"""
routes.py - Report HTTP endpoints.

GET /api/report  - latest report, regenerated when stale
GET /report      - same, legacy unprefixed path

app.state.mistral is set in main.py lifespan (None when no API key is configured).
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from mistralai import Mistral
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_api.config import settings
from analytics_api.database import get_db
from analytics_api.reports.generator import get_latest_report
from analytics_api.reports.schemas import ReportResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Reports"])


def get_mistral_client(request: Request) -> Optional[Mistral]:
    """Enrichment client from app.state, or None when enrichment is off."""
    if not settings.report_enrichment_enabled:
        return None
    return getattr(request.app.state, "mistral", None)


@router.get("/api/report", response_model=ReportResponse)
@router.get("/report", response_model=ReportResponse, include_in_schema=False)
async def latest_report_endpoint(
    db: AsyncSession = Depends(get_db),
    client: Optional[Mistral] = Depends(get_mistral_client),
) -> ReportResponse:
    """
    Return the newest report from the log.

    A report older than REPORT_FRESHNESS_MINUTES (default 5) is superseded by a
    newly generated one; an empty log always produces a first report.
    """
    report = await get_latest_report(db, client)
    return ReportResponse.model_validate(report)
