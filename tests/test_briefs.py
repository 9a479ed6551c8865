"""Tests for brief generation: keyword fallback and the LLM oracle."""

import json

import httpx
import pytest

from swiftjobs.models.enums import DeliverableType
from swiftjobs.services.briefs import (
    FALLBACK_CRITERIA,
    BriefOracle,
    BriefOracleError,
    classify_deliverable,
    complete_brief,
    fallback_brief,
    parse_oracle_reply,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Build a landing page for my bakery", DeliverableType.LANDING_PAGE),
        ("New website for the band", DeliverableType.LANDING_PAGE),
        ("30 second video for Instagram", DeliverableType.AD_1MIN),
        ("Run some ads for our launch", DeliverableType.AD_1MIN),
        ("Fix checkout error on mobile", DeliverableType.BUG_FIX),
        ("Redesign our onboarding UI", DeliverableType.DESIGN),
        ("Write a blog post about tea", DeliverableType.OTHER),
    ],
)
def test_keyword_classifier(text, expected):
    assert classify_deliverable(text) == expected


def test_short_keywords_match_whole_words_only():
    """"ad" inside "read" and "ui" inside "guide" are not keywords."""
    assert classify_deliverable("Proofread my thesis") == DeliverableType.OTHER
    assert classify_deliverable("Write a style guide") == DeliverableType.OTHER


def test_fallback_brief_uses_type_criteria():
    brief = fallback_brief("  Fix the broken login  ")
    assert brief.objective == "Fix the broken login"
    assert brief.deliverable_type == DeliverableType.BUG_FIX
    assert brief.acceptance_criteria == FALLBACK_CRITERIA[DeliverableType.BUG_FIX]
    assert len(brief.acceptance_criteria) == 3
    assert brief.source == "fallback"


def test_parse_reply_with_surrounding_text():
    reply = 'Sure! Here it is:\n{"objective": "Ship a launch page", "deliverableType": "landing_page", ' \
            '"acceptanceCriteria": ["Loads under 2s", "Mobile friendly", "Signup form works"]}\nThanks'
    brief = parse_oracle_reply("launch page", reply)
    assert brief.objective == "Ship a launch page"
    assert brief.deliverable_type == DeliverableType.LANDING_PAGE
    assert brief.acceptance_criteria == ["Loads under 2s", "Mobile friendly", "Signup form works"]
    assert brief.source == "oracle"


def test_parse_reply_fills_missing_fields():
    brief = parse_oracle_reply("Something odd", '{"deliverableType": "podcast"}')
    assert brief.objective == "Something odd"
    assert brief.deliverable_type == DeliverableType.OTHER
    assert brief.acceptance_criteria == FALLBACK_CRITERIA[DeliverableType.OTHER]


def test_parse_reply_without_json():
    with pytest.raises(BriefOracleError):
        parse_oracle_reply("x", "I cannot help with that")


def _reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"content": [{"type": "text", "text": text}]})


@pytest.mark.asyncio
async def test_disabled_oracle_uses_fallback():
    oracle = BriefOracle(api_key="")
    assert not oracle.enabled
    brief = await oracle.generate("Design a logo")
    assert brief.source == "fallback"
    assert brief.deliverable_type == DeliverableType.DESIGN


@pytest.mark.asyncio
async def test_oracle_calls_messages_api():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return _reply(json.dumps({
            "objective": "Fix the payment bug",
            "deliverableType": "bug_fix",
            "acceptanceCriteria": ["Payments succeed", "No regressions", "Tests added"],
        }))

    oracle = BriefOracle(api_key="sk-test", base_url="https://llm.test", transport=httpx.MockTransport(handler))
    brief = await oracle.generate("payments are failing")

    assert brief.source == "oracle"
    assert brief.deliverable_type == DeliverableType.BUG_FIX
    assert seen["url"] == "https://llm.test/v1/messages"
    assert seen["headers"]["x-api-key"] == "sk-test"
    assert "payments are failing" in seen["body"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_oracle_retries_transient_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(503)
        return _reply('{"objective": "Cut a promo", "deliverableType": "ad_1min", "acceptanceCriteria": ["60s"]}')

    oracle = BriefOracle(api_key="sk-test", transport=httpx.MockTransport(handler))
    brief = await oracle.generate("promo clip")
    assert len(calls) == 2
    assert brief.source == "oracle"
    assert brief.acceptance_criteria == ["60s"]


@pytest.mark.asyncio
async def test_oracle_client_error_falls_back_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(401, json={"error": "bad key"})

    oracle = BriefOracle(api_key="sk-wrong", transport=httpx.MockTransport(handler))
    brief = await oracle.generate("Fix the footer bug")
    assert len(calls) == 1
    assert brief.source == "fallback"
    assert brief.deliverable_type == DeliverableType.BUG_FIX


@pytest.mark.asyncio
async def test_oracle_garbage_reply_falls_back():
    oracle = BriefOracle(api_key="sk-test", transport=httpx.MockTransport(lambda r: _reply("no json here")))
    brief = await oracle.generate("Landing page for a gym")
    assert brief.source == "fallback"
    assert brief.deliverable_type == DeliverableType.LANDING_PAGE


@pytest.mark.asyncio
async def test_complete_brief_keeps_client_fields():
    oracle = BriefOracle(api_key="")
    objective, deliverable_type, criteria = await complete_brief(
        oracle, "Fix the cart bug", "Cart totals are correct", None, None
    )
    assert objective == "Cart totals are correct"
    assert deliverable_type == DeliverableType.BUG_FIX
    assert criteria == FALLBACK_CRITERIA[DeliverableType.BUG_FIX]
