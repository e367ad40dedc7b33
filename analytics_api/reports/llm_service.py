"""
llm_service.py - Mistral summarization layer for analytics reports.

Components:
  SYSTEM_PROMPT          - fixed instructions for the strict-JSON analytics summary
  build_summary_prompt() - serializes the report aggregate into the user turn
  extract_json_block()   - first fenced ```json block, else the bare JSON object
  parse_summary()        - extract + validate against AnalyticsSummary
  summarize_report()     - async Mistral call; returns a dict or None

Enrichment is best-effort: every failure path (client exception, no JSON,
invalid JSON, schema mismatch) logs a warning and returns None. Nothing here
raises into the report generator.

No HTTPException anywhere - this is pure business logic.
"""
import json
import logging
import re
from typing import Any, Optional

from mistralai import Mistral
from pydantic import ValidationError

from analytics_api.config import settings
from analytics_api.reports.schemas import AnalyticsSummary

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mistral API constants
# ---------------------------------------------------------------------------

MISTRAL_TEMPERATURE = 0.2
MISTRAL_MAX_TOKENS = 1500


SYSTEM_PROMPT = """You are a web analytics assistant. You receive raw session and event data
collected from a website and produce an analytics summary.

Respond with STRICT JSON only, no prose before or after, using exactly these keys:
{
  "total_page_views": <integer>,
  "conversion_funnel": [{"step": <string>, "count": <integer>, "conversion_rate": <number 0-1>}],
  "top_pages": [{"url": <string>, "views": <integer>}],
  "user_personas": [{"name": <string>, "description": <string>, "share": <number 0-1>}],
  "summary": <string, 2-4 sentences>,
  "recommendations": [<string>, ...]
}

Rules:
1. Count page views from events whose type is "pageview" or "NAVIGATE".
2. Derive pages from the event metadata/data page URLs when present.
3. Do not invent numbers that are not supported by the data.
4. Keep at most 5 top pages, 4 personas and 5 recommendations."""


FENCED_JSON_REGEX = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


# ---------------------------------------------------------------------------
# Prompt + response parsing
# ---------------------------------------------------------------------------

def build_summary_prompt(report_data: dict) -> str:
    """User turn: the full aggregate as compact JSON."""
    payload = json.dumps(report_data, default=str, separators=(",", ":"))
    return f"Analytics data:\n{payload}\n\nReturn the JSON summary."


def extract_json_block(text: str) -> Optional[dict[str, Any]]:
    """
    Pull a JSON object out of free model text.

    The first fenced block wins. Without a fence, the whole text is tried,
    which is what json_object response mode returns. Non-objects are rejected.
    """
    match = FENCED_JSON_REGEX.search(text)
    candidate = match.group(1) if match else text
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_summary(text: str) -> Optional[dict[str, Any]]:
    """Extract and schema-validate the summary; None if either step fails."""
    raw = extract_json_block(text)
    if raw is None:
        logger.warning("Summary response contained no JSON object len=%d", len(text))
        return None
    try:
        summary = AnalyticsSummary.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Summary JSON failed validation errors=%d", exc.error_count())
        return None
    return summary.model_dump()


# ---------------------------------------------------------------------------
# Main async summarization call
# ---------------------------------------------------------------------------

async def summarize_report(
    client: Mistral,
    report_data: dict,
    model: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    """
    Ask Mistral for a structured summary of a report aggregate.

    Blocking round-trip with no timeout or retry. Returns the validated
    summary dict, or None on any failure.
    """
    model = model or settings.mistral_model
    logger.info(
        "Calling Mistral API model=%s sessions=%d",
        model, report_data.get("totalSessions", 0),
    )

    try:
        response = await client.chat.complete_async(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_summary_prompt(report_data)},
            ],
            response_format={"type": "json_object"},
            temperature=MISTRAL_TEMPERATURE,
            max_tokens=MISTRAL_MAX_TOKENS,
        )
        content = response.choices[0].message.content
    except Exception as exc:
        logger.warning("Mistral summarization failed, report stays unenriched: %s", exc)
        return None

    if not isinstance(content, str):
        logger.warning("Mistral returned non-text content type=%s", type(content).__name__)
        return None

    logger.info("Mistral response received len=%d", len(content))
    return parse_summary(content)
