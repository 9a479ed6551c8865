"""User directory repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.user import UserRow
from swiftjobs.models.enums import UserRole
from swiftjobs.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRow)

    async def get(self, user_id: str) -> UserRow | None:
        return await self.get_by_id("user_id", user_id)

    async def list_freelancers(self, exclude: set[str] | None = None) -> list[UserRow]:
        """All freelancers ordered by id, optionally excluding some ids."""
        stmt = select(UserRow).where(UserRow.role == UserRole.FREELANCER).order_by(UserRow.user_id)
        if exclude:
            stmt = stmt.where(UserRow.user_id.not_in(exclude))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_profile(self, user_id: str, role: str, display_name: str | None, skills: list[str]) -> UserRow:
        return await self.upsert(
            ["user_id"],
            user_id=user_id,
            role=role,
            display_name=display_name,
            skills=skills,
        )
