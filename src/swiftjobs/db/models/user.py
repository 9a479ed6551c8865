"""User directory table (profiles mirrored from the identity provider)."""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from swiftjobs.db.base import Base, TimestampMixin


class UserRow(Base, TimestampMixin):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
