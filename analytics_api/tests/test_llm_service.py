"""
test_llm_service.py - Best-effort parsing of the Mistral summary response.

The model's output shape is unreliable: fenced or bare JSON, prose around it,
invalid JSON, or JSON with the wrong keys. Only a schema-valid object survives;
everything else becomes None without raising.
"""
from __future__ import annotations

import json

import pytest

from analytics_api.reports.llm_service import (
    SYSTEM_PROMPT,
    build_summary_prompt,
    extract_json_block,
    parse_summary,
    summarize_report,
)


SUMMARY = {
    "total_page_views": 12,
    "conversion_funnel": [{"step": "landing", "count": 10}],
    "top_pages": [{"url": "/pricing", "views": 7}],
    "user_personas": [],
    "summary": "Pricing draws most traffic.",
    "recommendations": ["Add a CTA on /pricing"],
}


# ---------------------------------------------------------------------------
# extract_json_block
# ---------------------------------------------------------------------------

def test_extract_fenced_block_with_prose_around_it() -> None:
    text = "Summary below.\n```json\n{\"a\": {\"b\": 1}}\n```\nLet me know!"
    assert extract_json_block(text) == {"a": {"b": 1}}


def test_extract_takes_first_fenced_block() -> None:
    text = "```json\n{\"first\": true}\n```\nand\n```json\n{\"second\": true}\n```"
    assert extract_json_block(text) == {"first": True}


def test_extract_unlabelled_fence() -> None:
    assert extract_json_block("```\n{\"x\": 1}\n```") == {"x": 1}


def test_extract_bare_json_object() -> None:
    assert extract_json_block('  {"x": 1}  ') == {"x": 1}


@pytest.mark.parametrize(
    "text",
    [
        "",
        "No JSON here at all.",
        "```json\n{not valid json}\n```",
        "```json\n[1, 2, 3]\n```",
        "The answer is {\"x\": 1} inline",
    ],
)
def test_extract_returns_none_for_unusable_text(text: str) -> None:
    assert extract_json_block(text) is None


# ---------------------------------------------------------------------------
# parse_summary
# ---------------------------------------------------------------------------

def test_parse_summary_validates_and_fills_defaults() -> None:
    text = "```json\n" + json.dumps({"total_page_views": 3, "summary": "Quiet day."}) + "\n```"

    summary = parse_summary(text)

    assert summary == {
        "total_page_views": 3,
        "conversion_funnel": [],
        "top_pages": [],
        "user_personas": [],
        "summary": "Quiet day.",
        "recommendations": [],
    }


def test_parse_summary_rejects_wrong_shape() -> None:
    text = "```json\n" + json.dumps({"pageViews": "lots"}) + "\n```"
    assert parse_summary(text) is None


def test_parse_summary_rejects_negative_counts() -> None:
    bad = dict(SUMMARY, total_page_views=-1)
    assert parse_summary(json.dumps(bad)) is None


# ---------------------------------------------------------------------------
# summarize_report
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_summarize_report_sends_prompt_and_parses(make_mistral) -> None:
    client = make_mistral(content=json.dumps(SUMMARY))
    report_data = {"totalSessions": 1, "sessions": [{"id": "s1", "eventsByType": {"click": 2}}]}

    summary = await summarize_report(client, report_data, model="mistral-test")

    assert summary["top_pages"] == [{"url": "/pricing", "views": 7}]
    kwargs = client.chat.complete_async.await_args.kwargs
    assert kwargs["model"] == "mistral-test"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert '"eventsByType":{"click":2}' in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_summarize_report_swallows_client_errors(make_mistral) -> None:
    client = make_mistral(error=TimeoutError("read timed out"))
    assert await summarize_report(client, {"totalSessions": 0, "sessions": []}) is None


@pytest.mark.asyncio
async def test_summarize_report_non_text_content(make_mistral) -> None:
    client = make_mistral(content=None)
    assert await summarize_report(client, {"totalSessions": 0, "sessions": []}) is None


def test_build_summary_prompt_handles_non_json_types() -> None:
    from datetime import datetime

    prompt = build_summary_prompt({"when": datetime(2025, 9, 13)})
    assert "2025-09-13 00:00:00" in prompt
