"""Pydantic models for jobs and price estimates."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from swiftjobs.models.enums import DeliverableType, Escalation, JobPriority, JobStatus


# ── Request models ─────────────────────────────────────────────────────────────

class JobCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    one_line_request: str = Field(..., min_length=1, max_length=500)
    objective: str | None = Field(default=None, max_length=5000)
    deliverable_type: DeliverableType | None = None
    acceptance_criteria: list[str] | None = Field(default=None, min_length=1, max_length=5)
    budget: float | None = Field(default=None, gt=0)
    deadline_hours: int = Field(..., gt=0, le=24 * 90)
    priority: JobPriority = JobPriority.NORMAL
    max_revisions: int | None = Field(default=None, ge=0, le=10)


class JobUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    objective: str | None = Field(default=None, max_length=5000)
    deliverable_type: DeliverableType | None = None
    acceptance_criteria: list[str] | None = Field(default=None, min_length=1, max_length=5)
    budget: float | None = Field(default=None, gt=0)
    deadline_hours: int | None = Field(default=None, gt=0, le=24 * 90)
    priority: JobPriority | None = None


class CancelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = Field(default=None, max_length=1000)


# ── Response models ────────────────────────────────────────────────────────────

class JobResponse(BaseModel):
    job_id: str
    client_id: str
    one_line_request: str
    objective: str
    deliverable_type: DeliverableType
    acceptance_criteria: list[str]
    budget: float | None
    deadline: datetime
    priority: JobPriority
    status: JobStatus
    estimated_price: int | None
    final_price: float | None
    revision_count: int
    max_revisions: int
    match_batches: int
    escalation: Escalation | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PriceEstimateResponse(BaseModel):
    base_price: int
    deadline_multiplier: float
    priority_multiplier: float
    estimated_price: int
    fast_price: int | None = None
    deadline_label: str
    formatted_price: str

    model_config = {"from_attributes": True}
