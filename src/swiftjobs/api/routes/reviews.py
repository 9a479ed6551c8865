"""Review gate API routes."""

from fastapi import APIRouter

from swiftjobs.dependencies import Broker, ClientIdentity, CurrentIdentity, DBSession
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.review import ReviewCreate, ReviewResponse
from swiftjobs.services import review_gate

router = APIRouter(tags=["Reviews"])


@router.post("/jobs/{job_id}/review", response_model=ReviewResponse)
async def submit_review(job_id: str, body: ReviewCreate, identity: ClientIdentity, db: DBSession, broker: Broker):
    bind_job_context(job_id)
    review = await review_gate.submit_review(
        db, broker, identity, job_id, body.met_criteria, body.feedback, body.rating
    )
    return ReviewResponse.model_validate(review)


@router.get("/jobs/{job_id}/review", response_model=ReviewResponse)
async def get_review(job_id: str, identity: CurrentIdentity, db: DBSession):
    review = await review_gate.get_review(db, identity, job_id)
    return ReviewResponse.model_validate(review)
