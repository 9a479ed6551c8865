"""Pydantic models for escrow transactions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from swiftjobs.models.enums import JobStatus, PaymentMethod, TransactionStatus
from swiftjobs.models.match import MatchResponse


class PaymentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    payment_method: PaymentMethod


class TransactionResponse(BaseModel):
    transaction_id: str
    job_id: str
    client_id: str
    amount: float
    status: TransactionStatus
    payment_method: PaymentMethod
    payment_reference: str
    admin_verified_at: datetime | None
    verified_by: str | None
    released_at: datetime | None
    refunded_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentDetails(TransactionResponse):
    """Transaction plus what the client must do to pay."""
    instructions: str


class MatchingSummary(BaseModel):
    outcome: str
    matches: list[MatchResponse]


class VerificationResponse(BaseModel):
    transaction: TransactionResponse
    job_status: JobStatus
    matching: MatchingSummary
