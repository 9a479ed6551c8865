"""Typed lifecycle events emitted after each committed state change."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from swiftjobs.services.id_generator import generate_id

JOB_STATUS_CHANGED = "job.status_changed"
MATCH_STATUS_CHANGED = "match.status_changed"
TRANSACTION_STATUS_CHANGED = "transaction.status_changed"
JOB_ESCALATED = "job.escalated"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event_id: str = Field(default_factory=lambda: generate_id("evt_"))
    event_type: str
    occurred_at: datetime = Field(default_factory=_now)
    job_id: str


class JobStatusChanged(DomainEvent):
    event_type: Literal["job.status_changed"] = JOB_STATUS_CHANGED
    from_status: str
    to_status: str


class MatchStatusChanged(DomainEvent):
    event_type: Literal["match.status_changed"] = MATCH_STATUS_CHANGED
    match_id: str
    freelancer_id: str
    from_status: str | None = None
    to_status: str


class TransactionStatusChanged(DomainEvent):
    event_type: Literal["transaction.status_changed"] = TRANSACTION_STATUS_CHANGED
    transaction_id: str
    from_status: str | None = None
    to_status: str


class JobEscalated(DomainEvent):
    event_type: Literal["job.escalated"] = JOB_ESCALATED
    escalation: str
    reason: str
