"""Base repository with common CRUD operations."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Generic async repository for SQLAlchemy models."""

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, pk_field: str, pk_value: str) -> T | None:
        """Get a single record by primary key."""
        stmt = select(self.model_class).where(
            getattr(self.model_class, pk_field) == pk_value
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        """Create and persist a new record."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: T, **kwargs: Any) -> T:
        """Update an existing record."""
        for key, value in kwargs.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def list_by_field(self, field: str, value: Any) -> list[T]:
        """List records matching a field value."""
        stmt = select(self.model_class).where(
            getattr(self.model_class, field) == value
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set(
        self,
        pk_field: str,
        pk_value: str,
        field: str,
        expected: Any,
        **values: Any,
    ) -> bool:
        """Update a row only if ``field`` still holds one of the expected values.

        Returns True when exactly one row changed. In-session objects are
        synchronised so callers see the new values without a reload.
        """
        if isinstance(expected, str) or not isinstance(expected, Iterable):
            expected = [expected]
        if hasattr(self.model_class, "updated_at"):
            values.setdefault("updated_at", datetime.now(timezone.utc))
        stmt = (
            update(self.model_class)
            .where(
                getattr(self.model_class, pk_field) == pk_value,
                getattr(self.model_class, field).in_(list(expected)),
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def upsert(self, conflict_keys: list[str], immutable: Iterable[str] = (), **values: Any) -> T:
        """Insert a row, or update it in place when the conflict key already exists.

        ``immutable`` names columns (typically the primary key) that keep their
        original value on conflict.
        """
        dialect = self.session.bind.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        skip = set(conflict_keys) | set(immutable)
        changes = {key: value for key, value in values.items() if key not in skip}
        if hasattr(self.model_class, "updated_at"):
            changes["updated_at"] = datetime.now(timezone.utc)
        stmt = insert(self.model_class).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=conflict_keys, set_=changes)
        await self.session.execute(stmt)

        reload = (
            select(self.model_class)
            .where(*(getattr(self.model_class, key) == values[key] for key in conflict_keys))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(reload)
        return result.scalar_one()

    async def get_by_id_for_update(self, pk_field: str, pk_value: str) -> T | None:
        """Reload a row bypassing the identity map, row-locked where supported."""
        stmt = (
            select(self.model_class)
            .where(getattr(self.model_class, pk_field) == pk_value)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
