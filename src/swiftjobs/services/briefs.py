"""Brief generation: one-line request -> objective, deliverable type, acceptance criteria.

The LLM oracle is optional. Whenever it is not configured or fails, the
deterministic keyword classifier answers instead.
"""

import json
import logging
import re

import httpx

from swiftjobs.config import settings
from swiftjobs.errors.exceptions import TransientError
from swiftjobs.models.brief import BriefSuggestion
from swiftjobs.models.enums import DeliverableType
from swiftjobs.services.retry import with_retry

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1024

FALLBACK_CRITERIA: dict[DeliverableType, list[str]] = {
    DeliverableType.LANDING_PAGE: [
        "Fully responsive design that works on mobile, tablet, and desktop",
        "All specified features and functionality are implemented and working",
        "Code is clean, commented, and follows best practices",
    ],
    DeliverableType.AD_1MIN: [
        "Video meets specified duration and format requirements",
        "All requested elements and messaging are included",
        "Final deliverable is in requested format and resolution",
    ],
    DeliverableType.BUG_FIX: [
        "Identified issue is completely resolved",
        "No new bugs introduced by the fix",
        "Code changes are tested and documented",
    ],
    DeliverableType.DESIGN: [
        "Design matches provided requirements and brand guidelines",
        "All design files are provided in requested formats",
        "Design is ready for implementation",
    ],
    DeliverableType.OTHER: [
        "Deliverable meets the stated requirements",
        "Quality standards are met",
        "Delivered on time",
    ],
}

# Checked in order; first hit wins
_KEYWORD_RULES: list[tuple[re.Pattern, DeliverableType]] = [
    (re.compile(r"landing page|landing|website"), DeliverableType.LANDING_PAGE),
    (re.compile(r"\bads?\b|video|commercial"), DeliverableType.AD_1MIN),
    (re.compile(r"bug|fix|error"), DeliverableType.BUG_FIX),
    (re.compile(r"design|\bui\b|\bux\b"), DeliverableType.DESIGN),
]

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """Given this client request: "{request}"

Please generate a structured brief with:
1. A clear, one-sentence objective
2. The deliverable type (one of: landing_page, ad_1min, bug_fix, design, other)
3. Three specific, measurable acceptance criteria

Return your response as JSON in this exact format:
{{
  "objective": "One clear sentence describing what needs to be delivered",
  "deliverableType": "landing_page|ad_1min|bug_fix|design|other",
  "acceptanceCriteria": [
    "First specific, measurable criterion",
    "Second specific, measurable criterion",
    "Third specific, measurable criterion"
  ]
}}

Only return the JSON, no other text."""


class BriefOracleError(Exception):
    """The oracle answered but the answer is unusable."""


def classify_deliverable(text: str) -> DeliverableType:
    lowered = text.lower()
    for pattern, deliverable_type in _KEYWORD_RULES:
        if pattern.search(lowered):
            return deliverable_type
    return DeliverableType.OTHER


def fallback_brief(one_line_request: str) -> BriefSuggestion:
    deliverable_type = classify_deliverable(one_line_request)
    return BriefSuggestion(
        objective=one_line_request.strip(),
        deliverable_type=deliverable_type,
        acceptance_criteria=list(FALLBACK_CRITERIA[deliverable_type]),
        source="fallback",
    )


def parse_oracle_reply(one_line_request: str, text: str) -> BriefSuggestion:
    """Extract the first JSON object from the model's reply and fill gaps with defaults."""
    found = _JSON_OBJECT.search(text)
    if not found:
        raise BriefOracleError("reply contains no JSON object")
    try:
        parsed = json.loads(found.group(0))
    except json.JSONDecodeError as exc:
        raise BriefOracleError(f"reply is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise BriefOracleError("reply JSON is not an object")

    try:
        deliverable_type = DeliverableType(parsed.get("deliverableType") or DeliverableType.OTHER)
    except ValueError:
        deliverable_type = DeliverableType.OTHER

    criteria = parsed.get("acceptanceCriteria")
    if isinstance(criteria, list):
        criteria = [str(c).strip() for c in criteria if str(c).strip()][:5]
    if not criteria:
        criteria = list(FALLBACK_CRITERIA[DeliverableType.OTHER])

    objective = parsed.get("objective")
    return BriefSuggestion(
        objective=str(objective).strip() if objective else one_line_request.strip(),
        deliverable_type=deliverable_type,
        acceptance_criteria=criteria,
        source="oracle",
    )


class BriefOracle:
    """Anthropic Messages API client with a keyword-classifier fallback."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.base_url = (base_url or settings.anthropic_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.brief_oracle_timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def generate(self, one_line_request: str) -> BriefSuggestion:
        if not self.enabled:
            return fallback_brief(one_line_request)
        try:
            text = await self._complete(PROMPT_TEMPLATE.format(request=one_line_request))
            return parse_oracle_reply(one_line_request, text)
        except (TransientError, BriefOracleError, httpx.HTTPError) as exc:
            logger.warning("Brief oracle unavailable, using keyword fallback: %s", exc)
            return fallback_brief(one_line_request)

    @with_retry(
        max_retries=settings.retry_max_attempts - 1,
        retry_delay=settings.retry_base_delay_seconds,
        retryable_exceptions=(TransientError,),
    )
    async def _complete(self, prompt: str) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/v1/messages", json=body, headers=headers)
        except httpx.TransportError as exc:
            raise TransientError(f"Brief oracle request failed: {exc}") from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientError(f"Brief oracle returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise BriefOracleError(f"Brief oracle returned HTTP {response.status_code}")

        content = response.json().get("content") or []
        text = "".join(block.get("text", "") for block in content if block.get("type") == "text")
        if not text:
            raise BriefOracleError("reply has no text content")
        return text


async def complete_brief(
    oracle: BriefOracle,
    one_line_request: str,
    objective: str | None,
    deliverable_type: DeliverableType | None,
    acceptance_criteria: list[str] | None,
) -> tuple[str, DeliverableType, list[str]]:
    """Fill whichever brief fields the client left out."""
    if objective and deliverable_type and acceptance_criteria:
        return objective, deliverable_type, acceptance_criteria
    suggestion = await oracle.generate(one_line_request)
    return (
        objective or suggestion.objective,
        deliverable_type or suggestion.deliverable_type,
        acceptance_criteria or suggestion.acceptance_criteria,
    )
