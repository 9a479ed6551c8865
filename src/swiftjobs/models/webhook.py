"""Pydantic models for webhook subscriptions."""

from pydantic import BaseModel, ConfigDict, Field

from swiftjobs.events.job_events import (
    JOB_ESCALATED,
    JOB_STATUS_CHANGED,
    MATCH_STATUS_CHANGED,
    TRANSACTION_STATUS_CHANGED,
)

EVENT_TYPES = (JOB_STATUS_CHANGED, MATCH_STATUS_CHANGED, TRANSACTION_STATUS_CHANGED, JOB_ESCALATED)


class WebhookCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., pattern=r"^https?://")
    secret: str = Field(..., min_length=16)
    event_types: list[str] = Field(default_factory=list)
    job_ids: list[str] = Field(default_factory=list, max_length=100)


class WebhookResponse(BaseModel):
    url: str
    event_types: list[str]
    job_ids: list[str]
    active: bool

    model_config = {"from_attributes": True}
