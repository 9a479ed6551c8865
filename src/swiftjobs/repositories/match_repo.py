"""Job match repository, including the historical aggregates used for scoring."""

from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.job import JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.db.models.review import JobReviewRow
from swiftjobs.models.enums import ACTIVE_MATCH_STATUSES, TERMINAL_JOB_STATUSES, MatchStatus
from swiftjobs.repositories.base import BaseRepository


class JobMatchRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobMatchRow)

    async def get(self, match_id: str) -> JobMatchRow | None:
        return await self.get_by_id("match_id", match_id)

    async def get_for_update(self, match_id: str) -> JobMatchRow | None:
        return await self.get_by_id_for_update("match_id", match_id)

    async def list_by_job(self, job_id: str) -> list[JobMatchRow]:
        stmt = (
            select(JobMatchRow)
            .where(JobMatchRow.job_id == job_id)
            .order_by(JobMatchRow.batch_number, JobMatchRow.rank)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_batch(self, job_id: str, batch_number: int) -> list[JobMatchRow]:
        stmt = (
            select(JobMatchRow)
            .where(JobMatchRow.job_id == job_id, JobMatchRow.batch_number == batch_number)
            .order_by(JobMatchRow.rank)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active(self, job_id: str) -> list[JobMatchRow]:
        """Matches locking a freelancer onto the job (never more than one)."""
        stmt = select(JobMatchRow).where(
            JobMatchRow.job_id == job_id,
            JobMatchRow.status.in_(list(ACTIVE_MATCH_STATUSES)),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_live_pending(self, job_id: str, now: datetime) -> list[JobMatchRow]:
        stmt = (
            select(JobMatchRow)
            .where(
                JobMatchRow.job_id == job_id,
                JobMatchRow.status == MatchStatus.PENDING,
                JobMatchRow.expires_at > now,
            )
            .order_by(JobMatchRow.batch_number.desc(), JobMatchRow.rank)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_pending(self, job_id: str) -> list[JobMatchRow]:
        stmt = select(JobMatchRow).where(
            JobMatchRow.job_id == job_id,
            JobMatchRow.status == MatchStatus.PENDING,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_overdue_pending(self, now: datetime) -> list[JobMatchRow]:
        """Pending offers whose hold window has closed, across all jobs."""
        stmt = (
            select(JobMatchRow)
            .where(JobMatchRow.status == MatchStatus.PENDING, JobMatchRow.expires_at <= now)
            .order_by(JobMatchRow.job_id, JobMatchRow.rank)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def offered_freelancer_ids(self, job_id: str) -> set[str]:
        stmt = select(JobMatchRow.freelancer_id).where(JobMatchRow.job_id == job_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def set_status(self, match_id: str, expected: str, new_status: str, **updates) -> bool:
        """Atomically resolve a match that is still in ``expected``."""
        return await self.compare_and_set("match_id", match_id, "status", expected, status=new_status, **updates)

    # ── Scoring aggregates ─────────────────────────────────────────────────────

    async def review_outcomes(self, freelancer_ids: list[str]) -> dict[str, tuple[int, int]]:
        """Map freelancer id -> (reviews, reviews with met_criteria) over their locked matches."""
        if not freelancer_ids:
            return {}
        met = func.sum(case((JobReviewRow.met_criteria == True, 1), else_=0))  # noqa: E712
        stmt = (
            select(JobMatchRow.freelancer_id, func.count(JobReviewRow.review_id), met)
            .join(
                JobReviewRow,
                (JobReviewRow.job_id == JobMatchRow.job_id)
                & (JobReviewRow.freelancer_id == JobMatchRow.freelancer_id),
            )
            .where(
                JobMatchRow.freelancer_id.in_(freelancer_ids),
                JobMatchRow.status.in_(list(ACTIVE_MATCH_STATUSES)),
            )
            .group_by(JobMatchRow.freelancer_id)
        )
        result = await self.session.execute(stmt)
        return {row[0]: (int(row[1]), int(row[2] or 0)) for row in result.all()}

    async def acceptance_latencies(self, freelancer_ids: list[str]) -> dict[str, list[float]]:
        """Map freelancer id -> hours between offer and acceptance for each accepted match."""
        if not freelancer_ids:
            return {}
        stmt = select(JobMatchRow.freelancer_id, JobMatchRow.created_at, JobMatchRow.accepted_at).where(
            JobMatchRow.freelancer_id.in_(freelancer_ids),
            JobMatchRow.accepted_at.is_not(None),
        )
        result = await self.session.execute(stmt)
        latencies: dict[str, list[float]] = {}
        for freelancer_id, created_at, accepted_at in result.all():
            hours = (accepted_at - created_at).total_seconds() / 3600
            latencies.setdefault(freelancer_id, []).append(hours)
        return latencies

    async def active_engagements(self, freelancer_ids: list[str], exclude_job_id: str) -> dict[str, int]:
        """Map freelancer id -> locked matches on other jobs that are still open."""
        if not freelancer_ids:
            return {}
        stmt = (
            select(JobMatchRow.freelancer_id, func.count(JobMatchRow.match_id))
            .join(JobRow, JobRow.job_id == JobMatchRow.job_id)
            .where(
                JobMatchRow.freelancer_id.in_(freelancer_ids),
                JobMatchRow.status.in_(list(ACTIVE_MATCH_STATUSES)),
                JobMatchRow.job_id != exclude_job_id,
                JobRow.status.not_in(list(TERMINAL_JOB_STATUSES)),
            )
            .group_by(JobMatchRow.freelancer_id)
        )
        result = await self.session.execute(stmt)
        return {row[0]: int(row[1]) for row in result.all()}
