"""Loading jobs and enforcing who may act on them."""

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.db.models.job import JobRow
from swiftjobs.errors.exceptions import AuthorizationError, NotFoundError
from swiftjobs.models.identity import Identity
from swiftjobs.repositories.job_repo import JobRepository
from swiftjobs.repositories.match_repo import JobMatchRepository


async def load_job(session: AsyncSession, job_id: str, for_update: bool = False) -> JobRow:
    repo = JobRepository(session)
    job = await (repo.get_for_update(job_id) if for_update else repo.get(job_id))
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


async def assigned_freelancer_id(session: AsyncSession, job_id: str) -> str | None:
    active = await JobMatchRepository(session).get_active(job_id)
    return active[0].freelancer_id if active else None


def require_job_client(job: JobRow, identity: Identity, allow_admin: bool = False) -> None:
    if identity.user_id == job.client_id:
        return
    if allow_admin and identity.is_admin:
        return
    raise AuthorizationError("Only the job's client can do this")


async def require_assigned_freelancer(session: AsyncSession, job: JobRow, identity: Identity) -> None:
    if await assigned_freelancer_id(session, job.job_id) != identity.user_id:
        raise AuthorizationError("Only the assigned freelancer can do this")


async def require_participant(session: AsyncSession, job: JobRow, identity: Identity) -> None:
    """Client, assigned freelancer, or admin."""
    if identity.is_admin or identity.user_id == job.client_id:
        return
    await require_assigned_freelancer(session, job, identity)


async def can_view_job(session: AsyncSession, job: JobRow, identity: Identity) -> bool:
    """Participants plus any freelancer who was offered the job."""
    if identity.is_admin or identity.user_id == job.client_id:
        return True
    offered = await JobMatchRepository(session).offered_freelancer_ids(job.job_id)
    return identity.user_id in offered


async def require_viewer(session: AsyncSession, job: JobRow, identity: Identity) -> None:
    if not await can_view_job(session, job, identity):
        raise AuthorizationError("You do not have access to this job")
