"""Review gate: the client's binary decision on a submitted deliverable.

Accepting releases escrow and completes the job. Rejecting sends the job back
for revision while revisions remain; once they are used up the job is
escalated to support and the rejection is refused.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.review import JobReviewRow
from swiftjobs.errors.exceptions import InvalidTransitionError, NotFoundError, RevisionLimitExceededError
from swiftjobs.events.broker import EventBroker
from swiftjobs.events.job_events import DomainEvent
from swiftjobs.models.enums import Escalation, JobStatus
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.job_repo import DeliverableRepository
from swiftjobs.repositories.review_repo import JobReviewRepository
from swiftjobs.services.access import assigned_freelancer_id, load_job, require_job_client, require_participant
from swiftjobs.services.escrow import release_payment
from swiftjobs.services.id_generator import generate_id
from swiftjobs.services.job_state import escalate, transition
from swiftjobs.services.locks import job_locks

logger = logging.getLogger(__name__)


async def submit_review(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    met_criteria: bool,
    feedback: str | None = None,
    rating: int | None = None,
    now: datetime | None = None,
) -> JobReviewRow:
    now = now or datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        require_job_client(job, identity)

        target = JobStatus.ACCEPTED if met_criteria else JobStatus.REVISION_REQUESTED
        if job.status != JobStatus.SUBMITTED:
            raise InvalidTransitionError(job.status, target, "only submitted work can be reviewed")

        if not met_criteria and job.revision_count >= job.max_revisions:
            escalated = escalate(job, Escalation.SUPPORT, "revision limit reached")
            await session.commit()
            if escalated:
                await broker.publish(escalated)
            raise RevisionLimitExceededError(job_id, job.max_revisions)

        review = await JobReviewRepository(session).upsert_decision(
            generate_id("rev_"),
            job_id=job_id,
            client_id=identity.user_id,
            freelancer_id=await assigned_freelancer_id(session, job_id),
            met_criteria=met_criteria,
            feedback=feedback,
            rating=rating if met_criteria else None,
        )

        events: list[DomainEvent] = []
        if met_criteria:
            events.append(await transition(session, job, JobStatus.ACCEPTED))
            events.append(await release_payment(session, job_id, now))
            events.append(await transition(session, job, JobStatus.COMPLETED, escalation=None))
        else:
            events.append(
                await transition(
                    session, job, JobStatus.REVISION_REQUESTED, revision_count=job.revision_count + 1
                )
            )
            await DeliverableRepository(session).clear_final(job_id)
        await session.commit()

    logger.info(
        "Review for job %s: met_criteria=%s (revision %d/%d)",
        job_id, met_criteria, job.revision_count, job.max_revisions,
    )
    await broker.publish_all(events)
    return review


async def get_review(session: AsyncSession, identity: Identity, job_id: str) -> JobReviewRow:
    job = await load_job(session, job_id)
    await require_participant(session, job, identity)
    review = await JobReviewRepository(session).get_for_job(job_id, job.client_id)
    if review is None:
        raise NotFoundError("Review for job", job_id)
    return review
