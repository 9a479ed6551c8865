"""Job review repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.review import JobReviewRow
from swiftjobs.repositories.base import BaseRepository


class JobReviewRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobReviewRow)

    async def get_for_job(self, job_id: str, client_id: str) -> JobReviewRow | None:
        stmt = select(JobReviewRow).where(
            JobReviewRow.job_id == job_id,
            JobReviewRow.client_id == client_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_decision(self, review_id: str, **values) -> JobReviewRow:
        """Record the client's current decision. Conflict key: (job_id, client_id)."""
        return await self.upsert(["job_id", "client_id"], immutable=["review_id"], review_id=review_id, **values)
