"""Job creation, brief editing and cancellation."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.config import settings
from swiftjobs.db.models.job import JobRow
from swiftjobs.errors.exceptions import ConflictError
from swiftjobs.events.broker import EventBroker
from swiftjobs.models.enums import JobStatus
from swiftjobs.models.identity import Identity
from swiftjobs.models.job import JobCreate, JobUpdate
from swiftjobs.repositories.job_repo import JobRepository
from swiftjobs.services.access import load_job, require_job_client, require_viewer
from swiftjobs.services.briefs import BriefOracle, complete_brief
from swiftjobs.services.holds import expire_open_offers
from swiftjobs.services.id_generator import generate_id
from swiftjobs.services.job_state import transition
from swiftjobs.services.locks import job_locks
from swiftjobs.services.pricing import calculate_price_estimate

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({JobStatus.DRAFT, JobStatus.BRIEF_COMPLETE})


async def create_job(
    session: AsyncSession,
    identity: Identity,
    oracle: BriefOracle,
    data: JobCreate,
    now: datetime | None = None,
) -> JobRow:
    """Create a job from the client's request. A job with a budget skips the draft stage."""
    now = now or datetime.now(timezone.utc)
    objective, deliverable_type, criteria = await complete_brief(
        oracle,
        data.one_line_request,
        data.objective,
        data.deliverable_type,
        data.acceptance_criteria,
    )
    estimate = calculate_price_estimate(deliverable_type, data.deadline_hours, data.priority)
    max_revisions = data.max_revisions if data.max_revisions is not None else settings.default_max_revisions

    job = await JobRepository(session).create(
        job_id=generate_id("job_"),
        client_id=identity.user_id,
        one_line_request=data.one_line_request,
        objective=objective,
        deliverable_type=deliverable_type,
        acceptance_criteria=criteria,
        budget=data.budget,
        deadline=now + timedelta(hours=data.deadline_hours),
        priority=data.priority,
        status=JobStatus.BRIEF_COMPLETE if data.budget is not None else JobStatus.DRAFT,
        estimated_price=estimate.estimated_price,
        final_price=data.budget,
        revision_count=0,
        max_revisions=max_revisions,
        match_batches=0,
    )
    await session.commit()
    logger.info(
        "Job %s created by %s (%s, est. %d)", job.job_id, identity.user_id, job.status, estimate.estimated_price
    )
    return job


async def update_brief(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    data: JobUpdate,
    now: datetime | None = None,
) -> JobRow:
    """Edit the brief before payment. Adding a budget to a draft completes the brief."""
    now = now or datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        require_job_client(job, identity)
        if job.status not in EDITABLE_STATUSES:
            raise ConflictError(
                f"The brief cannot be edited once the job is '{job.status}'",
                {"job_id": job_id, "status": job.status},
            )

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        deadline_hours = changes.pop("deadline_hours", None)
        if "budget" in changes:
            changes["final_price"] = changes["budget"]
        if deadline_hours is not None:
            changes["deadline"] = now + timedelta(hours=deadline_hours)
        else:
            deadline_hours = max(1, (job.deadline - now).total_seconds() / 3600)

        deliverable_type = changes.get("deliverable_type", job.deliverable_type)
        priority = changes.get("priority", job.priority)
        changes["estimated_price"] = calculate_price_estimate(
            deliverable_type, deadline_hours, priority
        ).estimated_price

        await JobRepository(session).update(job, **changes)

        event = None
        if job.status == JobStatus.DRAFT and job.final_price is not None:
            event = await transition(session, job, JobStatus.BRIEF_COMPLETE)
        await session.commit()

    if event:
        await broker.publish(event)
    return job


async def cancel_job(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    reason: str | None = None,
) -> JobRow:
    """Cancel a job from any non-terminal status. Pending offers are withdrawn; refunds are separate."""
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        require_job_client(job, identity, allow_admin=True)

        event = await transition(session, job, JobStatus.CANCELLED)
        events = [event, *await expire_open_offers(session, job_id)]
        await session.commit()

    logger.info("Job %s cancelled by %s: %s", job_id, identity.user_id, reason or "no reason given")
    await broker.publish_all(events)
    return job


async def get_job(session: AsyncSession, identity: Identity, job_id: str) -> JobRow:
    job = await load_job(session, job_id)
    await require_viewer(session, job, identity)
    return job


async def list_jobs(session: AsyncSession, identity: Identity) -> list[JobRow]:
    repo = JobRepository(session)
    if identity.is_client:
        return await repo.list_by_client(identity.user_id)
    return await repo.list_for_freelancer(identity.user_id)
