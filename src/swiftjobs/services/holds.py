"""Match holds: accepting, declining, expiring and force-assigning offers.

At most one match per job may be accepted or auto-assigned. That guarantee is
enforced three ways: the per-job lock, a compare-and-swap on the match status,
and the partial unique index on ``job_matches``. Losing any of them surfaces as
``MatchAlreadyResolvedError``.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.config import settings
from swiftjobs.db.models.job import JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    MatchAlreadyResolvedError,
    NotFoundError,
    ValidationError,
)
from swiftjobs.events.broker import EventBroker
from swiftjobs.events.job_events import DomainEvent, MatchStatusChanged
from swiftjobs.models.enums import Escalation, JobStatus, MatchStatus, UserRole
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.match_repo import JobMatchRepository
from swiftjobs.repositories.user_repo import UserRepository
from swiftjobs.services.access import load_job, require_job_client
from swiftjobs.services.id_generator import generate_id
from swiftjobs.services.job_state import escalate, transition
from swiftjobs.services.locks import job_locks
from swiftjobs.services.matching import MatchingEngine
from swiftjobs.services.scoring import load_histories, score_breakdown
from swiftjobs.services.workroom import seed_checklist

logger = logging.getLogger(__name__)


def _match_event(match: JobMatchRow, from_status: str | None, to_status: str) -> MatchStatusChanged:
    return MatchStatusChanged(
        job_id=match.job_id,
        match_id=match.match_id,
        freelancer_id=match.freelancer_id,
        from_status=from_status,
        to_status=to_status,
    )


async def _resolve(
    repo: JobMatchRepository,
    match: JobMatchRow,
    new_status: MatchStatus,
    **updates,
) -> MatchStatusChanged:
    """Move a pending match to ``new_status`` or raise if someone got there first."""
    try:
        changed = await repo.set_status(match.match_id, MatchStatus.PENDING, new_status, **updates)
    except IntegrityError:
        raise MatchAlreadyResolvedError(match.match_id, match.status)
    if not changed:
        await repo.session.refresh(match)
        raise MatchAlreadyResolvedError(match.match_id, match.status)
    return _match_event(match, MatchStatus.PENDING, new_status)


async def _expire_pending(
    repo: JobMatchRepository,
    job_id: str,
    now: datetime,
    keep: str | None = None,
    overdue_only: bool = False,
) -> list[DomainEvent]:
    events: list[DomainEvent] = []
    for match in await repo.list_pending(job_id):
        if match.match_id == keep:
            continue
        if overdue_only and match.expires_at > now:
            continue
        if await repo.set_status(match.match_id, MatchStatus.PENDING, MatchStatus.EXPIRED):
            events.append(_match_event(match, MatchStatus.PENDING, MatchStatus.EXPIRED))
    return events


async def reevaluate_batch(session: AsyncSession, job: JobRow, now: datetime) -> list[DomainEvent]:
    """After offers resolve without a winner, offer a fresh batch or escalate.

    A new batch excludes every freelancer already offered the job and is only
    generated while fewer than ``max_match_batches`` batches exist.
    """
    if job.status != JobStatus.MATCHED:
        return []
    repo = JobMatchRepository(session)
    if await repo.get_active(job.job_id) or await repo.list_live_pending(job.job_id, now):
        return []

    events: list[DomainEvent] = []
    if job.match_batches < settings.max_match_batches:
        batch = await MatchingEngine(session).generate_matches(job, now=now, exclude_offered=True)
        events.extend(batch.events)
        if not batch.empty:
            return events
    else:
        events.extend(await _expire_pending(repo, job.job_id, now, overdue_only=True))

    escalated = escalate(job, Escalation.MANUAL_ASSIGNMENT, "all offers lapsed without acceptance")
    if escalated:
        events.append(escalated)
    return events


async def _lock_assignment(
    session: AsyncSession,
    job: JobRow,
    match: JobMatchRow,
    new_status: MatchStatus,
    now: datetime,
) -> list[DomainEvent]:
    """Resolve ``match`` as the job's single locked freelancer and expire its siblings."""
    repo = JobMatchRepository(session)
    active = await repo.get_active(job.job_id)
    if active:
        raise MatchAlreadyResolvedError(match.match_id, match.status)

    updates = {"accepted_at": now} if new_status == MatchStatus.ACCEPTED else {}
    events: list[DomainEvent] = [await _resolve(repo, match, new_status, **updates)]
    events.extend(await _expire_pending(repo, job.job_id, now, keep=match.match_id))
    if job.escalation == Escalation.MANUAL_ASSIGNMENT:
        job.escalation = None
        logger.info("Job %s assigned, manual assignment escalation cleared", job.job_id)
    return events


async def accept_match(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    match_id: str,
    now: datetime | None = None,
) -> JobMatchRow:
    """The offered freelancer accepts, or the job's client selects, a pending offer.

    Expiry is checked here, at the moment of acceptance, independently of the sweeper.
    """
    now = now or datetime.now(timezone.utc)
    repo = JobMatchRepository(session)
    match = await repo.get(match_id)
    if match is None:
        raise NotFoundError("Match", match_id)

    events: list[DomainEvent] = []
    async with job_locks.hold(match.job_id):
        match = await repo.get_for_update(match_id)
        job = await load_job(session, match.job_id, for_update=True)
        if identity.user_id not in (match.freelancer_id, job.client_id):
            raise AuthorizationError("Only the offered freelancer or the job's client can accept")

        if match.status != MatchStatus.PENDING or job.status != JobStatus.MATCHED:
            raise MatchAlreadyResolvedError(match_id, match.status)

        if match.expires_at <= now:
            events.append(await _resolve(repo, match, MatchStatus.EXPIRED))
            events.extend(await reevaluate_batch(session, job, now))
            await session.commit()
            await broker.publish_all(events)
            logger.info("Match %s expired before acceptance", match_id)
            raise MatchAlreadyResolvedError(match_id, MatchStatus.EXPIRED)

        try:
            events.extend(await _lock_assignment(session, job, match, MatchStatus.ACCEPTED, now))
        except MatchAlreadyResolvedError:
            await session.rollback()
            raise
        await session.commit()

    logger.info("Match %s accepted: freelancer %s on job %s", match_id, match.freelancer_id, match.job_id)
    await broker.publish_all(events)
    return match


async def decline_match(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    match_id: str,
    now: datetime | None = None,
) -> JobMatchRow:
    now = now or datetime.now(timezone.utc)
    repo = JobMatchRepository(session)
    match = await repo.get(match_id)
    if match is None:
        raise NotFoundError("Match", match_id)

    async with job_locks.hold(match.job_id):
        match = await repo.get_for_update(match_id)
        if identity.user_id != match.freelancer_id:
            raise AuthorizationError("Only the offered freelancer can decline")
        if match.status != MatchStatus.PENDING or match.expires_at <= now:
            raise MatchAlreadyResolvedError(match_id, match.status)

        job = await load_job(session, match.job_id, for_update=True)
        events = [await _resolve(repo, match, MatchStatus.DECLINED)]
        events.extend(await reevaluate_batch(session, job, now))
        await session.commit()

    logger.info("Match %s declined by %s", match_id, identity.user_id)
    await broker.publish_all(events)
    return match


async def auto_assign(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    now: datetime | None = None,
) -> JobMatchRow:
    """Force-accept the top-ranked live offer and start the job."""
    now = now or datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        require_job_client(job, identity)
        if job.status != JobStatus.MATCHED:
            raise InvalidTransitionError(job.status, JobStatus.IN_PROGRESS)

        repo = JobMatchRepository(session)
        active = await repo.get_active(job_id)
        if active:
            raise MatchAlreadyResolvedError(active[0].match_id, active[0].status)

        live = await repo.list_live_pending(job_id, now)
        if not live:
            raise ConflictError("No pending offers to assign", {"job_id": job_id})
        top = live[0]

        try:
            events = await _lock_assignment(session, job, top, MatchStatus.AUTO_ASSIGNED, now)
        except MatchAlreadyResolvedError:
            await session.rollback()
            raise
        events.append(await transition(session, job, JobStatus.IN_PROGRESS))
        await seed_checklist(session, job)
        await session.commit()

    logger.info("Job %s auto-assigned to %s", job_id, top.freelancer_id)
    await broker.publish_all(events)
    return top


async def assign_manually(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    freelancer_id: str,
    now: datetime | None = None,
) -> JobMatchRow:
    """Admin places a named freelancer on the job and clears its escalation."""
    now = now or datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        if job.status != JobStatus.MATCHED:
            raise InvalidTransitionError(job.status, JobStatus.MATCHED, "job is not awaiting assignment")

        freelancer = await UserRepository(session).get(freelancer_id)
        if freelancer is None:
            raise NotFoundError("Freelancer", freelancer_id)
        if freelancer.role != UserRole.FREELANCER:
            raise ValidationError(f"User '{freelancer_id}' is not a freelancer")

        repo = JobMatchRepository(session)
        active = await repo.get_active(job_id)
        if active:
            raise MatchAlreadyResolvedError(active[0].match_id, active[0].status)

        existing = next((m for m in await repo.list_pending(job_id) if m.freelancer_id == freelancer_id), None)
        if existing is not None:
            match = existing
            events = await _lock_assignment(session, job, match, MatchStatus.ACCEPTED, now)
        else:
            events = await _expire_pending(repo, job_id, now)
            histories = await load_histories(session, job_id, [freelancer_id])
            breakdown = score_breakdown(
                job.deliverable_type, freelancer_id, freelancer.skills or [], histories[freelancer_id]
            )
            job.match_batches += 1
            match = await repo.create(
                match_id=generate_id("mtch_"),
                job_id=job_id,
                freelancer_id=freelancer_id,
                match_score=round(breakdown.score, 4),
                rank=1,
                batch_number=job.match_batches,
                status=MatchStatus.ACCEPTED,
                expires_at=now,
                accepted_at=now,
                created_at=now,
                updated_at=now,
            )
            events.append(_match_event(match, None, MatchStatus.ACCEPTED))

        job.escalation = None
        await session.commit()

    logger.info("Admin %s assigned %s to job %s", identity.user_id, freelancer_id, job_id)
    await broker.publish_all(events)
    return match


async def expire_job_holds(session: AsyncSession, job_id: str, now: datetime) -> list[DomainEvent]:
    """Expire a job's overdue offers and re-evaluate its batch. Caller holds the lock and commits."""
    repo = JobMatchRepository(session)
    events = await _expire_pending(repo, job_id, now, overdue_only=True)
    if not events:
        return []
    job = await load_job(session, job_id, for_update=True)
    logger.info("Expired %d overdue offers for job %s", len(events), job_id)
    events.extend(await reevaluate_batch(session, job, now))
    return events


async def sweep_job(
    session: AsyncSession,
    broker: EventBroker,
    job_id: str,
    now: datetime | None = None,
) -> list[DomainEvent]:
    now = now or datetime.now(timezone.utc)
    async with job_locks.hold(job_id):
        events = await expire_job_holds(session, job_id, now)
        await session.commit()
    await broker.publish_all(events)
    return events


async def list_matches(session: AsyncSession, identity: Identity, job_id: str) -> list[JobMatchRow]:
    """Client and admins see the current batch; a freelancer sees only their own offers."""
    job = await load_job(session, job_id)
    repo = JobMatchRepository(session)
    if identity.is_admin or identity.user_id == job.client_id:
        matches = await repo.list_by_job(job_id)
        return [m for m in matches if m.batch_number == job.match_batches] or matches
    matches = await repo.list_by_job(job_id)
    own = [m for m in matches if m.freelancer_id == identity.user_id]
    if not own:
        raise AuthorizationError("You do not have access to this job")
    return own


async def expire_open_offers(session: AsyncSession, job_id: str) -> list[DomainEvent]:
    """Withdraw every pending offer, e.g. when the job is cancelled. Caller holds the lock."""
    return await _expire_pending(JobMatchRepository(session), job_id, datetime.now(timezone.utc))
