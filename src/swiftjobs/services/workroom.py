"""Work phase: starting work, the milestone checklist, deliverables and final submission."""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.job import JobChecklistItemRow, JobDeliverableRow, JobRow
from swiftjobs.errors.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from swiftjobs.events.broker import EventBroker
from swiftjobs.models.enums import DeliverableType, JobStatus
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.job_repo import ChecklistRepository, DeliverableRepository
from swiftjobs.services.access import load_job, require_assigned_freelancer, require_participant
from swiftjobs.services.id_generator import generate_id
from swiftjobs.services.job_state import ensure_transition, transition
from swiftjobs.services.locks import job_locks

logger = logging.getLogger(__name__)

CHECKLIST_TEMPLATES: dict[DeliverableType, list[str]] = {
    DeliverableType.LANDING_PAGE: [
        "Design mockup approved",
        "Development complete",
        "Testing and QA",
        "Deployment",
    ],
    DeliverableType.AD_1MIN: [
        "Script/storyboard approved",
        "Video production",
        "Editing and post-production",
        "Final review",
    ],
    DeliverableType.BUG_FIX: [
        "Issue identified",
        "Fix implemented",
        "Testing completed",
        "Code review",
    ],
    DeliverableType.DESIGN: [
        "Initial concepts",
        "Client feedback incorporated",
        "Final design approved",
        "Assets delivered",
    ],
    DeliverableType.OTHER: [
        "Requirements confirmed",
        "Work in progress",
        "Quality check",
        "Final delivery",
    ],
}


async def seed_checklist(session: AsyncSession, job: JobRow) -> list[JobChecklistItemRow]:
    """Create the deliverable type's checklist unless the job already has one."""
    repo = ChecklistRepository(session)
    existing = await repo.list_by_job(job.job_id)
    if existing:
        return existing

    items = []
    for position, text in enumerate(CHECKLIST_TEMPLATES[DeliverableType(job.deliverable_type)]):
        items.append(
            await repo.create(
                item_id=generate_id("chk_"),
                job_id=job.job_id,
                item=text,
                position=position,
                completed=False,
            )
        )
    logger.info("Seeded %d checklist items for job %s", len(items), job.job_id)
    return items


async def start_work(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
) -> JobRow:
    """Assigned freelancer begins (or resumes after a revision request) work."""
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        await require_assigned_freelancer(session, job, identity)

        event = await transition(session, job, JobStatus.IN_PROGRESS)
        await seed_checklist(session, job)
        await session.commit()

    await broker.publish(event)
    return job


async def list_checklist(session: AsyncSession, identity: Identity, job_id: str) -> list[JobChecklistItemRow]:
    job = await load_job(session, job_id)
    await require_participant(session, job, identity)
    return await ChecklistRepository(session).list_by_job(job_id)


async def toggle_item(
    session: AsyncSession,
    identity: Identity,
    job_id: str,
    item_id: str,
    now: datetime | None = None,
) -> JobChecklistItemRow:
    job = await load_job(session, job_id)
    await require_participant(session, job, identity)

    repo = ChecklistRepository(session)
    item = await repo.get(item_id)
    if item is None or item.job_id != job_id:
        raise NotFoundError("Checklist item", item_id)

    if item.completed:
        await repo.update(item, completed=False, completed_by=None, completed_at=None)
    else:
        await repo.update(
            item,
            completed=True,
            completed_by=identity.user_id,
            completed_at=now or datetime.now(timezone.utc),
        )
    await session.commit()
    return item


async def add_deliverable(
    session: AsyncSession,
    identity: Identity,
    job_id: str,
    file_url: str,
    file_name: str,
    file_size: int | None = None,
) -> JobDeliverableRow:
    """Record an uploaded file as the next version. The file itself lives in external storage."""
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        await require_assigned_freelancer(session, job, identity)
        if job.status != JobStatus.IN_PROGRESS:
            raise ConflictError(
                "Deliverables can only be uploaded while work is in progress",
                {"job_id": job_id, "status": job.status},
            )

        repo = DeliverableRepository(session)
        version = await repo.latest_version(job_id) + 1
        deliverable = await repo.create(
            deliverable_id=generate_id("dlv_"),
            job_id=job_id,
            uploaded_by=identity.user_id,
            file_url=file_url,
            file_name=file_name,
            file_size=file_size,
            version=version,
            is_final=False,
        )
        await session.commit()

    logger.info("Deliverable v%d uploaded for job %s", version, job_id)
    return deliverable


async def list_deliverables(session: AsyncSession, identity: Identity, job_id: str) -> list[JobDeliverableRow]:
    job = await load_job(session, job_id)
    await require_participant(session, job, identity)
    return await DeliverableRepository(session).list_by_job(job_id)


async def submit_final(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    deliverable_id: str | None = None,
) -> JobDeliverableRow:
    """Flag a deliverable (default: the latest version) as final and submit the job for review."""
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        await require_assigned_freelancer(session, job, identity)
        ensure_transition(job.status, JobStatus.SUBMITTED)

        repo = DeliverableRepository(session)
        if deliverable_id is not None:
            deliverable = await repo.get(deliverable_id)
            if deliverable is None or deliverable.job_id != job_id:
                raise NotFoundError("Deliverable", deliverable_id)
        else:
            versions = await repo.list_by_job(job_id)
            if not versions:
                raise InvalidTransitionError(job.status, JobStatus.SUBMITTED, "no deliverable uploaded")
            deliverable = versions[0]

        await repo.update(deliverable, is_final=True)
        event = await transition(session, job, JobStatus.SUBMITTED)
        await session.commit()

    await broker.publish(event)
    return deliverable
