"""Job, checklist and deliverable repositories."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.job import JobChecklistItemRow, JobDeliverableRow, JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.repositories.base import BaseRepository


class JobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    async def get(self, job_id: str) -> JobRow | None:
        return await self.get_by_id("job_id", job_id)

    async def get_for_update(self, job_id: str) -> JobRow | None:
        return await self.get_by_id_for_update("job_id", job_id)

    async def list_by_client(self, client_id: str) -> list[JobRow]:
        stmt = select(JobRow).where(JobRow.client_id == client_id).order_by(JobRow.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_freelancer(self, freelancer_id: str) -> list[JobRow]:
        """Jobs the freelancer was ever offered."""
        stmt = (
            select(JobRow)
            .where(JobRow.job_id.in_(select(JobMatchRow.job_id).where(JobMatchRow.freelancer_id == freelancer_id)))
            .order_by(JobRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_escalated(self) -> list[JobRow]:
        stmt = select(JobRow).where(JobRow.escalation.is_not(None)).order_by(JobRow.updated_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_status(self, job_id: str, expected: str, new_status: str, **updates) -> bool:
        """Atomically move a job from ``expected`` to ``new_status``."""
        return await self.compare_and_set("job_id", job_id, "status", expected, status=new_status, **updates)


class ChecklistRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobChecklistItemRow)

    async def get(self, item_id: str) -> JobChecklistItemRow | None:
        return await self.get_by_id("item_id", item_id)

    async def list_by_job(self, job_id: str) -> list[JobChecklistItemRow]:
        stmt = (
            select(JobChecklistItemRow)
            .where(JobChecklistItemRow.job_id == job_id)
            .order_by(JobChecklistItemRow.position)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class DeliverableRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobDeliverableRow)

    async def get(self, deliverable_id: str) -> JobDeliverableRow | None:
        return await self.get_by_id("deliverable_id", deliverable_id)

    async def list_by_job(self, job_id: str) -> list[JobDeliverableRow]:
        stmt = (
            select(JobDeliverableRow)
            .where(JobDeliverableRow.job_id == job_id)
            .order_by(JobDeliverableRow.version.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def latest_version(self, job_id: str) -> int:
        stmt = select(func.max(JobDeliverableRow.version)).where(JobDeliverableRow.job_id == job_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def has_final(self, job_id: str) -> bool:
        stmt = select(func.count()).where(
            JobDeliverableRow.job_id == job_id,
            JobDeliverableRow.is_final == True,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def clear_final(self, job_id: str) -> None:
        stmt = (
            update(JobDeliverableRow)
            .where(JobDeliverableRow.job_id == job_id, JobDeliverableRow.is_final == True)  # noqa: E712
            .values(is_final=False)
        )
        await self.session.execute(stmt)
