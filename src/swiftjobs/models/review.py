"""Pydantic models for the review gate."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    met_criteria: bool
    feedback: str | None = Field(default=None, max_length=5000)
    rating: int | None = Field(default=None, ge=1, le=5)


class ReviewResponse(BaseModel):
    review_id: str
    job_id: str
    client_id: str
    freelancer_id: str
    met_criteria: bool
    feedback: str | None
    rating: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
