"""Job lifecycle state machine.

The transition table is the single authority on job status changes. Every
change goes through ``transition`` which checks the table, runs the guard for
the target status and writes the new status with compare-and-swap, so a move
is never evaluated against a stale snapshot.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.job import JobRow
from swiftjobs.errors.exceptions import (
    InvalidTransitionError,
    PaymentNotVerifiedError,
    RevisionLimitExceededError,
)
from swiftjobs.events.job_events import JobEscalated, JobStatusChanged
from swiftjobs.models.enums import JobStatus, TransactionStatus
from swiftjobs.repositories.job_repo import DeliverableRepository, JobRepository
from swiftjobs.repositories.match_repo import JobMatchRepository
from swiftjobs.repositories.transaction_repo import TransactionRepository

logger = logging.getLogger(__name__)

TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.DRAFT: frozenset({JobStatus.BRIEF_COMPLETE, JobStatus.PAYMENT_PENDING, JobStatus.CANCELLED}),
    JobStatus.BRIEF_COMPLETE: frozenset({JobStatus.PAYMENT_PENDING, JobStatus.CANCELLED}),
    JobStatus.PAYMENT_PENDING: frozenset({JobStatus.MATCHED, JobStatus.CANCELLED}),
    JobStatus.MATCHED: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.SUBMITTED, JobStatus.CANCELLED}),
    JobStatus.SUBMITTED: frozenset(
        {JobStatus.ACCEPTED, JobStatus.REVISION_REQUESTED, JobStatus.CANCELLED}
    ),
    JobStatus.ACCEPTED: frozenset({JobStatus.COMPLETED}),
    JobStatus.REVISION_REQUESTED: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


def allowed_targets(status: str) -> frozenset[JobStatus]:
    return TRANSITIONS.get(JobStatus(status), frozenset())


def ensure_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is in the table."""
    if JobStatus(target) not in allowed_targets(current):
        raise InvalidTransitionError(current, target)


async def check_guard(session: AsyncSession, job: JobRow, target: JobStatus) -> None:
    """Run the precondition for entering ``target``."""
    if target in (JobStatus.BRIEF_COMPLETE, JobStatus.PAYMENT_PENDING):
        if job.final_price is None:
            raise InvalidTransitionError(job.status, target, "job has no final price")

    elif target == JobStatus.MATCHED:
        txn = await TransactionRepository(session).get_by_job(job.job_id)
        if txn is None or txn.status != TransactionStatus.PAID:
            raise PaymentNotVerifiedError(job.job_id, txn.status if txn else None)

    elif target == JobStatus.IN_PROGRESS and job.status == JobStatus.MATCHED:
        active = await JobMatchRepository(session).get_active(job.job_id)
        if len(active) != 1:
            raise InvalidTransitionError(
                job.status, target, f"expected exactly one assigned freelancer, found {len(active)}"
            )

    elif target == JobStatus.SUBMITTED:
        if not await DeliverableRepository(session).has_final(job.job_id):
            raise InvalidTransitionError(job.status, target, "no deliverable is flagged final")

    elif target == JobStatus.REVISION_REQUESTED:
        if job.revision_count >= job.max_revisions:
            raise RevisionLimitExceededError(job.job_id, job.max_revisions)


async def transition(
    session: AsyncSession,
    job: JobRow,
    target: JobStatus,
    **updates,
) -> JobStatusChanged:
    """Move ``job`` to ``target`` and return the event to publish after commit.

    The caller holds the job's lock and owns the commit. ``updates`` are
    written in the same UPDATE statement as the status.
    """
    current = job.status
    ensure_transition(current, target)
    await check_guard(session, job, target)

    repo = JobRepository(session)
    if not await repo.set_status(job.job_id, current, target, **updates):
        await session.refresh(job)
        raise InvalidTransitionError(job.status, target, "job status changed concurrently")

    logger.info("Job %s: %s -> %s", job.job_id, current, target)
    return JobStatusChanged(job_id=job.job_id, from_status=current, to_status=target)


def escalate(job: JobRow, escalation: str, reason: str) -> JobEscalated | None:
    """Flag the job for human handling. Returns None if it is already flagged the same way."""
    if job.escalation == escalation:
        return None
    job.escalation = escalation
    logger.warning("Job %s escalated (%s): %s", job.job_id, escalation, reason)
    return JobEscalated(job_id=job.job_id, escalation=escalation, reason=reason)
