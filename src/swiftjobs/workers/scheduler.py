"""Background sweeper that expires lapsed match holds."""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy import select

from swiftjobs.config import settings
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.events.broker import EventBroker
from swiftjobs.logging_config import job_log_context
from swiftjobs.models.enums import MatchStatus
from swiftjobs.services.holds import sweep_job
from swiftjobs.services.id_generator import generate_id

logger = logging.getLogger(__name__)

_LOCK_PREFIX = "swiftjobs:sweeper:lock"

# Delete the lock only while it still carries this sweep's token
_RELEASE_LOCK = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


async def _acquire_lock(redis, key: str, token: str) -> bool:
    return bool(await redis.set(key, token, nx=True, ex=max(settings.hold_sweep_interval_seconds, 5)))


async def _release_lock(redis, key: str, token: str) -> None:
    released = await redis.eval(_RELEASE_LOCK, 1, key, token)
    if not released:
        logger.warning("Sweeper lock %s lapsed before release", key)


async def _jobs_with_overdue_holds(session_factory, now: datetime) -> list[str]:
    async with session_factory() as session:
        stmt = (
            select(JobMatchRow.job_id)
            .where(JobMatchRow.status == MatchStatus.PENDING, JobMatchRow.expires_at <= now)
            .distinct()
        )
        result = await session.execute(stmt)
        return sorted(result.scalars().all())


async def sweep_expired_holds(
    session_factory,
    broker: EventBroker,
    now: datetime | None = None,
    redis=None,
) -> int:
    """Expire every overdue pending offer and re-evaluate the affected batches.

    Returns the number of jobs swept.
    """
    now = now or datetime.now(timezone.utc)
    swept = 0
    token = generate_id("swp_")

    for job_id in await _jobs_with_overdue_holds(session_factory, now):
        # Distributed lock via Redis SET NX so only one instance sweeps a job
        lock_key = f"{_LOCK_PREFIX}:{job_id}"
        if redis:
            if not await _acquire_lock(redis, lock_key, token):
                logger.debug("Job %s already being swept by another instance", job_id)
                continue

        try:
            with job_log_context(job_id, worker="hold_sweeper"):
                async with session_factory() as session:
                    events = await sweep_job(session, broker, job_id, now=now)
            if events:
                swept += 1
        except Exception as exc:
            logger.warning("Failed to sweep holds for job %s: %s", job_id, exc)
        finally:
            if redis:
                await _release_lock(redis, lock_key, token)

    return swept


async def run_hold_sweeper(app) -> None:
    """Background task that periodically expires lapsed offers."""
    interval = settings.hold_sweep_interval_seconds
    logger.info("Match hold sweeper started (interval=%ds)", interval)

    while True:
        try:
            await asyncio.sleep(interval)

            session_factory = getattr(app.state, "db_session_factory", None)
            broker = getattr(app.state, "broker", None)
            if not session_factory or broker is None:
                continue

            count = await sweep_expired_holds(session_factory, broker, redis=getattr(app.state, "redis", None))
            if count:
                logger.info("Sweeper expired holds on %d jobs", count)

        except asyncio.CancelledError:
            logger.info("Match hold sweeper stopped")
            break
        except Exception as exc:
            logger.exception("Sweeper error: %s", exc)
