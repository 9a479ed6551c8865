"""A job never ends up with more than one locked freelancer, however the requests interleave."""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from swiftjobs.db.base import Base
import swiftjobs.db.models  # noqa: F401
from swiftjobs.db.engine import create_db_engine, create_session_factory
from swiftjobs.errors.exceptions import MatchAlreadyResolvedError
from swiftjobs.models.enums import ACTIVE_MATCH_STATUSES, MatchStatus, PaymentMethod, UserRole
from swiftjobs.models.identity import Identity
from swiftjobs.models.job import JobCreate
from swiftjobs.repositories.match_repo import JobMatchRepository
from swiftjobs.repositories.user_repo import UserRepository
from swiftjobs.services import escrow, holds, jobs

FREELANCERS = ("usr_fl_a", "usr_fl_b", "usr_fl_c")


@pytest.fixture
async def file_session_factory(tmp_path):
    """File-backed SQLite so every session gets its own connection."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


async def _seed(session_factory, broker, oracle, client_identity, admin_identity):
    async with session_factory() as session:
        users = UserRepository(session)
        for user_id in FREELANCERS:
            await users.upsert_profile(user_id, UserRole.FREELANCER, user_id, ["debugging"])
        await session.commit()

        job = await jobs.create_job(
            session,
            client_identity,
            oracle,
            JobCreate(
                one_line_request="Fix the flaky login",
                objective="Login works on every attempt",
                deliverable_type="bug_fix",
                acceptance_criteria=["Login succeeds 100 times in a row"],
                budget=100,
                deadline_hours=48,
            ),
        )
        txn = await escrow.submit_payment(session, broker, client_identity, job.job_id, PaymentMethod.PAYPAL)
        result = await escrow.verify_payment(session, broker, admin_identity, txn.transaction_id)
        return job.job_id, [m.match_id for m in result.matches]


@pytest.mark.asyncio
async def test_racing_accepts_and_auto_assign(file_session_factory, broker, oracle, client_identity, admin_identity):
    job_id, match_ids = await _seed(file_session_factory, broker, oracle, client_identity, admin_identity)
    assert len(match_ids) == 3

    async def accept(match_id, user_id):
        async with file_session_factory() as session:
            identity = Identity(user_id=user_id, role=UserRole.FREELANCER)
            return await holds.accept_match(session, broker, identity, match_id)

    async def force():
        async with file_session_factory() as session:
            return await holds.auto_assign(session, broker, client_identity, job_id)

    results = await asyncio.gather(
        accept(match_ids[0], FREELANCERS[0]),
        accept(match_ids[1], FREELANCERS[1]),
        force(),
        accept(match_ids[2], FREELANCERS[2]),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert all(isinstance(e, MatchAlreadyResolvedError) for e in losers)

    async with file_session_factory() as session:
        matches = await JobMatchRepository(session).list_by_job(job_id)
    active = [m for m in matches if m.status in ACTIVE_MATCH_STATUSES]
    assert [m.match_id for m in active] == [winners[0].match_id]
    assert all(m.status == MatchStatus.EXPIRED for m in matches if m not in active)


@pytest.mark.asyncio
async def test_storage_rejects_second_active_match(db_session, add_freelancer, matched_job):
    """Even without the job lock, the partial unique index refuses a second locked freelancer."""
    await add_freelancer("usr_fl_a")
    await add_freelancer("usr_fl_b")
    _, result = await matched_job()
    first, second = result.matches

    repo = JobMatchRepository(db_session)
    assert await repo.set_status(first.match_id, MatchStatus.PENDING, MatchStatus.ACCEPTED)
    with pytest.raises(IntegrityError):
        await repo.set_status(second.match_id, MatchStatus.PENDING, MatchStatus.AUTO_ASSIGNED)
