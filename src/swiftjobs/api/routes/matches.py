"""Matching and offer API routes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from swiftjobs.dependencies import Broker, ClientIdentity, CurrentIdentity, DBSession, FreelancerIdentity
from swiftjobs.errors.exceptions import InvalidTransitionError, NoEligibleFreelancersError
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.enums import Escalation, JobStatus
from swiftjobs.models.match import MatchBatchResponse, MatchResponse
from swiftjobs.services import holds
from swiftjobs.services.access import load_job, require_job_client
from swiftjobs.services.escrow import MATCHES_CREATED, NO_ELIGIBLE_FREELANCERS
from swiftjobs.services.job_state import escalate
from swiftjobs.services.locks import job_locks
from swiftjobs.services.matching import MatchingEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Matches"])


@router.post("/jobs/{job_id}/matches", response_model=MatchBatchResponse)
async def generate_matches(job_id: str, identity: ClientIdentity, db: DBSession, broker: Broker):
    """Return the job's live offers, generating a batch if none is live."""
    bind_job_context(job_id)
    now = datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        job = await load_job(db, job_id, for_update=True)
        require_job_client(job, identity)
        if job.status != JobStatus.MATCHED:
            raise InvalidTransitionError(job.status, JobStatus.MATCHED, "matching runs after payment is verified")

        batch = await MatchingEngine(db).generate_matches(job, now=now)
        events = list(batch.events)
        if batch.empty:
            escalated = escalate(job, Escalation.MANUAL_ASSIGNMENT, "no eligible freelancers")
            if escalated:
                events.append(escalated)
        await db.commit()

    await broker.publish_all(events)
    if batch.empty:
        raise NoEligibleFreelancersError(job_id)
    return MatchBatchResponse(
        job_id=job_id,
        matches=[MatchResponse.from_row(m, now) for m in batch.matches],
        outcome=MATCHES_CREATED if batch.created else "existing_batch",
    )


@router.get("/jobs/{job_id}/matches", response_model=MatchBatchResponse)
async def list_matches(job_id: str, identity: CurrentIdentity, db: DBSession):
    bind_job_context(job_id)
    now = datetime.now(timezone.utc)
    matches = await holds.list_matches(db, identity, job_id)
    return MatchBatchResponse(
        job_id=job_id,
        matches=[MatchResponse.from_row(m, now) for m in matches],
        outcome=MATCHES_CREATED if matches else NO_ELIGIBLE_FREELANCERS,
    )


@router.post("/matches/{match_id}/accept", response_model=MatchResponse)
async def accept_match(match_id: str, identity: CurrentIdentity, db: DBSession, broker: Broker):
    """Offered freelancer accepts, or the job's client selects, an offer."""
    match = await holds.accept_match(db, broker, identity, match_id)
    return MatchResponse.from_row(match, datetime.now(timezone.utc))


@router.post("/matches/{match_id}/decline", response_model=MatchResponse)
async def decline_match(match_id: str, identity: FreelancerIdentity, db: DBSession, broker: Broker):
    match = await holds.decline_match(db, broker, identity, match_id)
    return MatchResponse.from_row(match, datetime.now(timezone.utc))


@router.post("/jobs/{job_id}/auto-assign", response_model=MatchResponse)
async def auto_assign(job_id: str, identity: ClientIdentity, db: DBSession, broker: Broker):
    """Force-accept the top-ranked pending offer and start the job."""
    bind_job_context(job_id)
    match = await holds.auto_assign(db, broker, identity, job_id)
    return MatchResponse.from_row(match, datetime.now(timezone.utc))
