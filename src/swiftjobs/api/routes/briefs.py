"""Brief generation API route."""

from fastapi import APIRouter, Request

from swiftjobs.api.middleware.rate_limit import limiter
from swiftjobs.config import settings
from swiftjobs.dependencies import CurrentIdentity, Oracle
from swiftjobs.models.brief import BriefRequest, BriefSuggestion

router = APIRouter(tags=["Briefs"])


@router.post("/briefs", response_model=BriefSuggestion)
@limiter.limit(settings.rate_limit_briefs)
async def generate_brief(request: Request, body: BriefRequest, identity: CurrentIdentity, oracle: Oracle):
    """Suggest an objective, deliverable type and acceptance criteria for a one-line request."""
    return await oracle.generate(body.one_line_request)
