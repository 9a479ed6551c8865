"""Pydantic models for match offers."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from swiftjobs.models.enums import MatchStatus


class ManualAssignment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    freelancer_id: str


class MatchResponse(BaseModel):
    match_id: str
    job_id: str
    freelancer_id: str
    match_score: float
    rank: int
    batch_number: int
    status: MatchStatus
    expires_at: datetime
    accepted_at: datetime | None
    created_at: datetime
    hold_seconds_remaining: int = 0

    model_config = {"from_attributes": True}

    @classmethod
    def from_row(cls, row, now: datetime) -> "MatchResponse":
        response = cls.model_validate(row)
        if row.status == MatchStatus.PENDING:
            response.hold_seconds_remaining = max(0, int((row.expires_at - now).total_seconds()))
        return response


class MatchBatchResponse(BaseModel):
    job_id: str
    matches: list[MatchResponse]
    outcome: str
