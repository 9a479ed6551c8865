"""Admin API routes: payments, manual assignment, escalations and webhook subscriptions."""

from datetime import datetime, timezone

from fastapi import APIRouter

from swiftjobs.dependencies import AdminIdentity, Broker, DBSession
from swiftjobs.errors.exceptions import NotFoundError, ValidationError
from swiftjobs.events.webhook_config import WebhookSubscription, webhook_registry
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.enums import TransactionStatus
from swiftjobs.models.job import JobResponse
from swiftjobs.models.match import ManualAssignment, MatchResponse
from swiftjobs.models.transaction import MatchingSummary, TransactionResponse, VerificationResponse
from swiftjobs.models.webhook import EVENT_TYPES, WebhookCreate, WebhookResponse
from swiftjobs.repositories.job_repo import JobRepository
from swiftjobs.repositories.transaction_repo import TransactionRepository
from swiftjobs.services import escrow, holds

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    identity: AdminIdentity,
    db: DBSession,
    status: TransactionStatus = TransactionStatus.PENDING,
):
    """Transactions by status; defaults to payments waiting for verification."""
    txns = await TransactionRepository(db).list_by_status(status)
    return [TransactionResponse.model_validate(t) for t in txns]


@router.post("/transactions/{transaction_id}/verify", response_model=VerificationResponse)
async def verify_payment(transaction_id: str, identity: AdminIdentity, db: DBSession, broker: Broker):
    result = await escrow.verify_payment(db, broker, identity, transaction_id)
    now = datetime.now(timezone.utc)
    return VerificationResponse(
        transaction=TransactionResponse.model_validate(result.transaction),
        job_status=result.job.status,
        matching=MatchingSummary(
            outcome=result.outcome,
            matches=[MatchResponse.from_row(m, now) for m in result.matches],
        ),
    )


@router.post("/transactions/{transaction_id}/refund", response_model=TransactionResponse)
async def refund(transaction_id: str, identity: AdminIdentity, db: DBSession, broker: Broker):
    txn = await escrow.refund(db, broker, identity, transaction_id)
    return TransactionResponse.model_validate(txn)


@router.post("/jobs/{job_id}/assign", response_model=MatchResponse)
async def assign_freelancer(job_id: str, body: ManualAssignment, identity: AdminIdentity, db: DBSession, broker: Broker):
    bind_job_context(job_id)
    match = await holds.assign_manually(db, broker, identity, job_id, body.freelancer_id)
    return MatchResponse.from_row(match, datetime.now(timezone.utc))


@router.get("/escalations", response_model=list[JobResponse])
async def list_escalations(identity: AdminIdentity, db: DBSession):
    jobs = await JobRepository(db).list_escalated()
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/webhooks", response_model=list[WebhookResponse])
async def list_webhooks(identity: AdminIdentity):
    return [WebhookResponse.model_validate(s) for s in webhook_registry.list_all()]


@router.post("/webhooks", status_code=201, response_model=WebhookResponse)
async def register_webhook(body: WebhookCreate, identity: AdminIdentity):
    """Subscribe a URL to lifecycle events; empty ``event_types``/``job_ids`` mean all of them."""
    unknown = sorted(set(body.event_types) - set(EVENT_TYPES))
    if unknown:
        raise ValidationError(f"Unknown event types: {', '.join(unknown)}")
    subscription = WebhookSubscription(
        url=body.url, secret=body.secret, event_types=body.event_types, job_ids=body.job_ids
    )
    webhook_registry.register(subscription)
    return WebhookResponse.model_validate(subscription)


@router.delete("/webhooks", status_code=204)
async def unregister_webhook(url: str, identity: AdminIdentity):
    if not webhook_registry.unregister(url):
        raise NotFoundError("Webhook", url)
