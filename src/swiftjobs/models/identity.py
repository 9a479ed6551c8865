"""Authenticated caller capability, resolved once per request from the JWT."""

from pydantic import BaseModel, ConfigDict

from swiftjobs.models.enums import UserRole


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    is_admin: bool = False

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_freelancer(self) -> bool:
        return self.role == UserRole.FREELANCER
