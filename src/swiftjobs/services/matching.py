"""Matching engine: score freelancers for a job and create a batch of time-limited offers."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.config import settings
from swiftjobs.db.models.job import JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.events.job_events import MatchStatusChanged
from swiftjobs.models.enums import MatchStatus
from swiftjobs.repositories.match_repo import JobMatchRepository
from swiftjobs.repositories.user_repo import UserRepository
from swiftjobs.services.id_generator import generate_id
from swiftjobs.services.scoring import ScoreBreakdown, load_histories, score_breakdown

logger = logging.getLogger(__name__)


class MatchBatch:
    """Result of a matching run."""

    def __init__(
        self,
        matches: list[JobMatchRow],
        created: bool,
        events: list[MatchStatusChanged] | None = None,
    ) -> None:
        self.matches = matches
        self.created = created
        self.events = events or []

    @property
    def empty(self) -> bool:
        return not self.matches


class MatchingEngine:
    """Ranks freelancers for a job and persists the top candidates as pending offers.

    The caller holds the job lock and owns the commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        batch_size: int | None = None,
        hold_minutes: int | None = None,
        score_floor: float | None = None,
    ) -> None:
        self.session = session
        self.batch_size = batch_size if batch_size is not None else settings.match_batch_size
        self.hold_minutes = hold_minutes if hold_minutes is not None else settings.match_hold_minutes
        self.score_floor = score_floor if score_floor is not None else settings.match_score_floor
        self.match_repo = JobMatchRepository(session)
        self.user_repo = UserRepository(session)

    async def rank_candidates(self, job: JobRow, exclude: set[str] | None = None) -> list[ScoreBreakdown]:
        """Score every eligible freelancer, best first, ties broken by freelancer id."""
        freelancers = await self.user_repo.list_freelancers(exclude=exclude)
        if not freelancers:
            return []

        ids = [f.user_id for f in freelancers]
        histories = await load_histories(self.session, job.job_id, ids)
        scored = [
            score_breakdown(job.deliverable_type, f.user_id, f.skills or [], histories[f.user_id])
            for f in freelancers
        ]
        scored.sort(key=lambda s: (-s.score, s.freelancer_id))
        return scored

    async def _expire_stale(self, job_id: str) -> list[MatchStatusChanged]:
        """Close out lapsed offers the sweeper has not reached yet."""
        events = []
        for stale in await self.match_repo.list_pending(job_id):
            if await self.match_repo.set_status(stale.match_id, MatchStatus.PENDING, MatchStatus.EXPIRED):
                events.append(
                    MatchStatusChanged(
                        job_id=job_id,
                        match_id=stale.match_id,
                        freelancer_id=stale.freelancer_id,
                        from_status=MatchStatus.PENDING,
                        to_status=MatchStatus.EXPIRED,
                    )
                )
        return events

    async def generate_matches(
        self,
        job: JobRow,
        now: datetime | None = None,
        exclude_offered: bool = False,
    ) -> MatchBatch:
        """Return the job's live batch, or create a new one.

        A batch with at least one unexpired pending offer is returned unchanged,
        and a job that already has its freelancer returns that match.
        An empty result means no candidate cleared the score floor.
        """
        now = now or datetime.now(timezone.utc)

        active = await self.match_repo.get_active(job.job_id)
        if active:
            return MatchBatch(active, created=False)

        live = await self.match_repo.list_live_pending(job.job_id, now)
        if live:
            current = max(m.batch_number for m in live)
            return MatchBatch([m for m in live if m.batch_number == current], created=False)

        events = await self._expire_stale(job.job_id)
        exclude = await self.match_repo.offered_freelancer_ids(job.job_id) if exclude_offered else None
        ranked = await self.rank_candidates(job, exclude=exclude)
        selected = [c for c in ranked if c.score > self.score_floor][: self.batch_size]
        if not selected:
            logger.warning(
                "No eligible freelancers for job %s (%d scored, floor %.2f)",
                job.job_id, len(ranked), self.score_floor,
            )
            return MatchBatch([], created=False, events=events)

        batch_number = job.match_batches + 1
        expires_at = now + timedelta(minutes=self.hold_minutes)
        matches = []
        for rank, candidate in enumerate(selected, start=1):
            match = await self.match_repo.create(
                match_id=generate_id("mtch_"),
                job_id=job.job_id,
                freelancer_id=candidate.freelancer_id,
                match_score=round(candidate.score, 4),
                rank=rank,
                batch_number=batch_number,
                status=MatchStatus.PENDING,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            matches.append(match)
            events.append(
                MatchStatusChanged(
                    job_id=job.job_id,
                    match_id=match.match_id,
                    freelancer_id=match.freelancer_id,
                    from_status=None,
                    to_status=MatchStatus.PENDING,
                )
            )
        job.match_batches = batch_number
        await self.session.flush()

        logger.info(
            "Created match batch %d for job %s: %s",
            batch_number, job.job_id, ", ".join(f"{c.freelancer_id}={c.score:.3f}" for c in selected),
        )
        return MatchBatch(matches, created=True, events=events)
