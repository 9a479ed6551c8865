"""Escrow transaction repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.transaction import TransactionRow
from swiftjobs.repositories.base import BaseRepository


class TransactionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, TransactionRow)

    async def get(self, transaction_id: str) -> TransactionRow | None:
        return await self.get_by_id("transaction_id", transaction_id)

    async def get_for_update(self, transaction_id: str) -> TransactionRow | None:
        return await self.get_by_id_for_update("transaction_id", transaction_id)

    async def get_by_job(self, job_id: str) -> TransactionRow | None:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.job_id == job_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_status(self, status: str) -> list[TransactionRow]:
        stmt = select(TransactionRow).where(TransactionRow.status == status).order_by(TransactionRow.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_status(self, transaction_id: str, expected, new_status: str, **updates) -> bool:
        return await self.compare_and_set(
            "transaction_id", transaction_id, "status", expected, status=new_status, **updates
        )
