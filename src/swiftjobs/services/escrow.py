"""Escrow ledger: one transaction per job, pending -> paid -> released | refunded.

``paid`` is only reachable through admin verification and ``released`` only
through the accept branch of the review gate.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.config import settings
from swiftjobs.db.models.job import JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.db.models.transaction import TransactionRow
from swiftjobs.errors.exceptions import ConflictError, NotFoundError, PaymentNotVerifiedError
from swiftjobs.events.broker import EventBroker
from swiftjobs.events.job_events import DomainEvent, TransactionStatusChanged
from swiftjobs.models.enums import (
    TERMINAL_JOB_STATUSES,
    Escalation,
    JobStatus,
    PaymentMethod,
    TransactionStatus,
)
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.transaction_repo import TransactionRepository
from swiftjobs.services.access import load_job, require_job_client
from swiftjobs.services.holds import expire_open_offers
from swiftjobs.services.id_generator import generate_id, generate_payment_reference
from swiftjobs.services.job_state import escalate, transition
from swiftjobs.services.locks import job_locks
from swiftjobs.services.matching import MatchingEngine

logger = logging.getLogger(__name__)

PAYMENT_INSTRUCTIONS: dict[PaymentMethod, str] = {
    PaymentMethod.PAYPAL: "Send payment to: paypal@swift.com\nInclude reference in payment notes.",
    PaymentMethod.MOBILE_MONEY: "Send to: +1234567890\nInclude reference in the transfer message.",
    PaymentMethod.BANK_TRANSFER: "Account: 123456789\nBank: Swift Bank\nInclude reference in the transfer description.",
}

NO_ELIGIBLE_FREELANCERS = "no_eligible_freelancers"
MATCHES_CREATED = "matches_created"


def payment_instructions(method: str, reference: str, amount: float) -> str:
    text = PAYMENT_INSTRUCTIONS[PaymentMethod(method)]
    return f"Amount: ${amount:,.2f}\nReference: {reference}\n{text}"


def _txn_event(txn: TransactionRow, from_status: str | None, to_status: str) -> TransactionStatusChanged:
    return TransactionStatusChanged(
        job_id=txn.job_id,
        transaction_id=txn.transaction_id,
        from_status=from_status,
        to_status=to_status,
    )


@dataclass
class VerificationResult:
    transaction: TransactionRow
    job: JobRow
    matches: list[JobMatchRow] = field(default_factory=list)
    outcome: str = MATCHES_CREATED


async def submit_payment(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    job_id: str,
    method: PaymentMethod,
) -> TransactionRow:
    """Client chooses a payment method; the job waits for admin verification."""
    repo = TransactionRepository(session)
    async with job_locks.hold(job_id):
        job = await load_job(session, job_id, for_update=True)
        require_job_client(job, identity)

        existing = await repo.get_by_job(job_id)
        if existing is not None:
            if existing.status == TransactionStatus.PENDING and existing.payment_method != method:
                await repo.update(existing, payment_method=method)
                await session.commit()
                logger.info("Payment method for job %s changed to %s", job_id, method)
            elif existing.status != TransactionStatus.PENDING:
                raise ConflictError(
                    f"Payment for this job is already '{existing.status}'",
                    {"transaction_id": existing.transaction_id, "status": existing.status},
                )
            return existing

        event = await transition(session, job, JobStatus.PAYMENT_PENDING)
        txn = await repo.create(
            transaction_id=generate_id("txn_"),
            job_id=job_id,
            client_id=job.client_id,
            amount=job.final_price,
            status=TransactionStatus.PENDING,
            payment_method=method,
            payment_reference=generate_payment_reference(settings.payment_reference_prefix),
        )
        await session.commit()

    logger.info("Transaction %s created for job %s (%s)", txn.transaction_id, job_id, txn.payment_reference)
    await broker.publish_all([_txn_event(txn, None, TransactionStatus.PENDING), event])
    return txn


async def get_payment(session: AsyncSession, identity: Identity, job_id: str) -> TransactionRow:
    job = await load_job(session, job_id)
    require_job_client(job, identity, allow_admin=True)
    txn = await TransactionRepository(session).get_by_job(job_id)
    if txn is None:
        raise NotFoundError("Transaction for job", job_id)
    return txn


async def verify_payment(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    transaction_id: str,
    now: datetime | None = None,
) -> VerificationResult:
    """Admin confirms the offline payment, the job becomes ``matched`` and the first batch is offered."""
    now = now or datetime.now(timezone.utc)
    repo = TransactionRepository(session)
    txn = await repo.get(transaction_id)
    if txn is None:
        raise NotFoundError("Transaction", transaction_id)

    async with job_locks.hold(txn.job_id):
        job = await load_job(session, txn.job_id, for_update=True)
        if not await repo.set_status(
            transaction_id,
            TransactionStatus.PENDING,
            TransactionStatus.PAID,
            admin_verified_at=now,
            verified_by=identity.user_id,
        ):
            await session.refresh(txn)
            raise ConflictError(
                f"Transaction is '{txn.status}', only pending payments can be verified",
                {"transaction_id": transaction_id, "status": txn.status},
            )
        events: list[DomainEvent] = [_txn_event(txn, TransactionStatus.PENDING, TransactionStatus.PAID)]
        events.append(await transition(session, job, JobStatus.MATCHED))

        batch = await MatchingEngine(session).generate_matches(job, now=now)
        result = VerificationResult(transaction=txn, job=job, matches=batch.matches)
        events.extend(batch.events)
        if batch.empty:
            result.outcome = NO_ELIGIBLE_FREELANCERS
            escalated = escalate(job, Escalation.MANUAL_ASSIGNMENT, "no eligible freelancers after payment")
            if escalated:
                events.append(escalated)
        await session.commit()

    logger.info("Transaction %s verified by %s", transaction_id, identity.user_id)
    await broker.publish_all(events)
    return result


async def release_payment(session: AsyncSession, job_id: str, now: datetime) -> TransactionStatusChanged:
    """paid -> released. Caller holds the job lock and commits."""
    repo = TransactionRepository(session)
    txn = await repo.get_by_job(job_id)
    if txn is None or not await repo.set_status(
        txn.transaction_id, TransactionStatus.PAID, TransactionStatus.RELEASED, released_at=now
    ):
        raise PaymentNotVerifiedError(job_id, txn.status if txn else None)
    logger.info("Released escrow %s for job %s", txn.transaction_id, job_id)
    return _txn_event(txn, TransactionStatus.PAID, TransactionStatus.RELEASED)


async def refund(
    session: AsyncSession,
    broker: EventBroker,
    identity: Identity,
    transaction_id: str,
    now: datetime | None = None,
) -> TransactionRow:
    """Admin refunds a pending or paid transaction and cancels the job if it is still open."""
    now = now or datetime.now(timezone.utc)
    repo = TransactionRepository(session)
    txn = await repo.get(transaction_id)
    if txn is None:
        raise NotFoundError("Transaction", transaction_id)

    async with job_locks.hold(txn.job_id):
        txn = await repo.get_for_update(transaction_id)
        previous = txn.status
        if not await repo.set_status(
            transaction_id,
            [TransactionStatus.PENDING, TransactionStatus.PAID],
            TransactionStatus.REFUNDED,
            refunded_at=now,
        ):
            await session.refresh(txn)
            raise ConflictError(
                f"Transaction is '{txn.status}' and cannot be refunded",
                {"transaction_id": transaction_id, "status": txn.status},
            )
        events: list[DomainEvent] = [_txn_event(txn, previous, TransactionStatus.REFUNDED)]

        job = await load_job(session, txn.job_id, for_update=True)
        if job.status not in TERMINAL_JOB_STATUSES:
            events.extend(await expire_open_offers(session, job.job_id))
            events.append(await transition(session, job, JobStatus.CANCELLED, escalation=None))
        await session.commit()

    logger.info("Transaction %s refunded by %s", transaction_id, identity.user_id)
    await broker.publish_all(events)
    return txn

