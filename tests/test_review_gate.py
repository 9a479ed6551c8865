"""Tests for the workroom and the review gate."""

import pytest

from swiftjobs.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    RevisionLimitExceededError,
)
from swiftjobs.models.enums import Escalation, JobStatus, TransactionStatus, UserRole
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.job_repo import DeliverableRepository
from swiftjobs.repositories.transaction_repo import TransactionRepository
from swiftjobs.services import holds, review_gate, workroom

FREELANCER = Identity(user_id="usr_fl_a", role=UserRole.FREELANCER)


@pytest.fixture
def assigned_job(db_session, broker, client_identity, add_freelancer, matched_job):
    """A job auto-assigned to usr_fl_a and in progress."""

    async def _assigned(**overrides):
        await add_freelancer(FREELANCER.user_id, ["debugging"])
        job, _ = await matched_job(**overrides)
        await holds.auto_assign(db_session, broker, client_identity, job.job_id)
        return job

    return _assigned


async def _deliver(db_session, broker, job, name="fix.patch"):
    await workroom.add_deliverable(db_session, FREELANCER, job.job_id, f"https://files.test/{name}", name, 512)
    return await workroom.submit_final(db_session, broker, FREELANCER, job.job_id)


@pytest.mark.asyncio
async def test_deliverable_versions(db_session, broker, assigned_job):
    job = await assigned_job()
    first = await workroom.add_deliverable(db_session, FREELANCER, job.job_id, "https://files.test/v1", "v1.zip")
    second = await workroom.add_deliverable(db_session, FREELANCER, job.job_id, "https://files.test/v2", "v2.zip")

    assert (first.version, second.version) == (1, 2)
    listed = await workroom.list_deliverables(db_session, FREELANCER, job.job_id)
    assert [d.version for d in listed] == [2, 1]


@pytest.mark.asyncio
async def test_submit_without_deliverable(db_session, broker, assigned_job):
    job = await assigned_job()
    with pytest.raises(InvalidTransitionError) as exc_info:
        await workroom.submit_final(db_session, broker, FREELANCER, job.job_id)
    assert "no deliverable" in exc_info.value.message


@pytest.mark.asyncio
async def test_only_assigned_freelancer_uploads(db_session, broker, assigned_job):
    job = await assigned_job()
    stranger = Identity(user_id="usr_fl_zed", role=UserRole.FREELANCER)
    with pytest.raises(AuthorizationError):
        await workroom.add_deliverable(db_session, stranger, job.job_id, "https://files.test/x", "x")


@pytest.mark.asyncio
async def test_checklist_toggle(db_session, client_identity, assigned_job):
    job = await assigned_job()
    items = await workroom.list_checklist(db_session, FREELANCER, job.job_id)
    assert [i.item for i in items] == ["Issue identified", "Fix implemented", "Testing completed", "Code review"]

    item = await workroom.toggle_item(db_session, FREELANCER, job.job_id, items[0].item_id)
    assert item.completed is True
    assert item.completed_by == FREELANCER.user_id

    item = await workroom.toggle_item(db_session, client_identity, job.job_id, items[0].item_id)
    assert item.completed is False
    assert item.completed_at is None


@pytest.mark.asyncio
async def test_accept_releases_escrow_and_completes(db_session, broker, client_identity, assigned_job):
    job = await assigned_job()
    final = await _deliver(db_session, broker, job)
    assert final.is_final is True
    assert job.status == JobStatus.SUBMITTED

    review = await review_gate.submit_review(
        db_session, broker, client_identity, job.job_id, met_criteria=True, feedback="Great", rating=5
    )

    assert review.rating == 5
    assert review.freelancer_id == FREELANCER.user_id
    assert job.status == JobStatus.COMPLETED
    txn = await TransactionRepository(db_session).get_by_job(job.job_id)
    assert txn.status == TransactionStatus.RELEASED
    assert txn.released_at is not None
    transitions = [
        (e.from_status, e.to_status) for e in broker.local.events_for(job.job_id)
        if e.event_type == "job.status_changed"
    ]
    assert transitions[-2:] == [("submitted", "accepted"), ("accepted", "completed")]


@pytest.mark.asyncio
async def test_reject_requests_revision(db_session, broker, client_identity, assigned_job):
    job = await assigned_job()
    await _deliver(db_session, broker, job)

    review = await review_gate.submit_review(
        db_session, broker, client_identity, job.job_id, met_criteria=False, feedback="Still broken", rating=4
    )

    assert review.rating is None
    assert job.status == JobStatus.REVISION_REQUESTED
    assert job.revision_count == 1
    assert not await DeliverableRepository(db_session).has_final(job.job_id)
    txn = await TransactionRepository(db_session).get_by_job(job.job_id)
    assert txn.status == TransactionStatus.PAID

    # Back to work, then a second review replaces the first decision
    await workroom.start_work(db_session, broker, FREELANCER, job.job_id)
    await _deliver(db_session, broker, job, "fix-v2.patch")
    second = await review_gate.submit_review(db_session, broker, client_identity, job.job_id, met_criteria=True)
    assert second.review_id == review.review_id
    assert second.met_criteria is True
    assert job.status == JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_revision_limit_escalates_to_support(db_session, broker, client_identity, assigned_job):
    job = await assigned_job(max_revisions=1)
    await _deliver(db_session, broker, job)
    await review_gate.submit_review(db_session, broker, client_identity, job.job_id, met_criteria=False)
    await workroom.start_work(db_session, broker, FREELANCER, job.job_id)
    await _deliver(db_session, broker, job, "fix-v2.patch")

    with pytest.raises(RevisionLimitExceededError) as exc_info:
        await review_gate.submit_review(db_session, broker, client_identity, job.job_id, met_criteria=False)

    assert exc_info.value.details["outcome"] == "contact_support"
    assert job.status == JobStatus.SUBMITTED
    assert job.revision_count == 1
    assert job.escalation == Escalation.SUPPORT


@pytest.mark.asyncio
async def test_review_requires_submitted_job(db_session, broker, client_identity, assigned_job):
    job = await assigned_job()
    with pytest.raises(InvalidTransitionError):
        await review_gate.submit_review(db_session, broker, client_identity, job.job_id, met_criteria=True)


@pytest.mark.asyncio
async def test_upload_after_submission_conflicts(db_session, broker, assigned_job):
    job = await assigned_job()
    await _deliver(db_session, broker, job)
    with pytest.raises(ConflictError):
        await workroom.add_deliverable(db_session, FREELANCER, job.job_id, "https://files.test/late", "late.zip")


@pytest.mark.asyncio
async def test_get_review_for_participants(db_session, broker, client_identity, assigned_job):
    job = await assigned_job()
    await _deliver(db_session, broker, job)
    await review_gate.submit_review(db_session, broker, client_identity, job.job_id, met_criteria=True, rating=4)

    review = await review_gate.get_review(db_session, FREELANCER, job.job_id)
    assert review.rating == 4
