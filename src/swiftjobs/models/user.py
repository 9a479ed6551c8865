"""Pydantic models for user profiles."""

from datetime import datetime

from pydantic import BaseModel, Field

from swiftjobs.models.enums import UserRole


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=200)
    skills: list[str] = Field(default_factory=list, max_length=50)


class UserResponse(BaseModel):
    user_id: str
    display_name: str | None
    role: UserRole
    skills: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
