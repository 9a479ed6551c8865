"""Escrow payment API routes (client side)."""

from fastapi import APIRouter

from swiftjobs.dependencies import Broker, ClientIdentity, CurrentIdentity, DBSession
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.transaction import PaymentCreate, PaymentDetails, TransactionResponse
from swiftjobs.services import escrow

router = APIRouter(tags=["Payments"])


def _details(txn) -> PaymentDetails:
    return PaymentDetails(
        **TransactionResponse.model_validate(txn).model_dump(),
        instructions=escrow.payment_instructions(txn.payment_method, txn.payment_reference, txn.amount),
    )


@router.post("/jobs/{job_id}/payment", status_code=201, response_model=PaymentDetails)
async def submit_payment(job_id: str, body: PaymentCreate, identity: ClientIdentity, db: DBSession, broker: Broker):
    """Record the client's payment method; an admin verifies the payment offline."""
    bind_job_context(job_id)
    txn = await escrow.submit_payment(db, broker, identity, job_id, body.payment_method)
    return _details(txn)


@router.get("/jobs/{job_id}/payment", response_model=PaymentDetails)
async def get_payment(job_id: str, identity: CurrentIdentity, db: DBSession):
    bind_job_context(job_id)
    txn = await escrow.get_payment(db, identity, job_id)
    return _details(txn)
