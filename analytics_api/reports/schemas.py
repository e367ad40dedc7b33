"""
schemas.py - Report Pydantic v2 data contracts.

Defines:
  - AnalyticsSummary  (strict contract for the LLM enrichment JSON)
  - ReportResponse    (GET /api/report body)
"""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from analytics_api.schemas import CamelModel, UtcDatetime


# ---------------------------------------------------------------------------
# LLM summary contract
# ---------------------------------------------------------------------------

class FunnelStep(BaseModel):
    step: str
    count: int = Field(ge=0)
    conversion_rate: Optional[float] = None


class TopPage(BaseModel):
    url: str
    views: int = Field(ge=0)


class UserPersona(BaseModel):
    name: str
    description: str
    share: Optional[float] = None


class AnalyticsSummary(BaseModel):
    """
    Shape the summarization prompt asks for. Anything the model returns that
    does not fit is discarded by llm_service.parse_summary (report keeps a
    null summary).
    """
    model_config = ConfigDict(extra="ignore")

    total_page_views: int = Field(ge=0)
    conversion_funnel: List[FunnelStep] = Field(default_factory=list)
    top_pages: List[TopPage] = Field(default_factory=list)
    user_personas: List[UserPersona] = Field(default_factory=list)
    summary: str
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Report response
# ---------------------------------------------------------------------------

class ReportResponse(CamelModel):
    """
    One entry of the report log.

    data:    aggregate over all sessions at generation time
    summary: AnalyticsSummary as JSON, or null when enrichment was skipped or failed
    """
    id: str
    data: dict[str, Any]
    summary: Optional[dict[str, Any]] = None
    created_at: UtcDatetime


__all__ = [
    "FunnelStep",
    "TopPage",
    "UserPersona",
    "AnalyticsSummary",
    "ReportResponse",
]
