"""Pydantic models for the checklist and deliverables."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ChecklistItemResponse(BaseModel):
    item_id: str
    job_id: str
    item: str
    position: int
    completed: bool
    completed_by: str | None
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class DeliverableCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file_url: str = Field(..., min_length=1, max_length=2000)
    file_name: str = Field(..., min_length=1, max_length=500)
    file_size: int | None = Field(default=None, ge=0)


class DeliverableResponse(BaseModel):
    deliverable_id: str
    job_id: str
    uploaded_by: str
    file_url: str
    file_name: str
    file_size: int | None
    version: int
    is_final: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmitRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    deliverable_id: str | None = None
