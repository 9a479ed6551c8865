"""Per-job mutual exclusion.

Every operation that reads and then mutates a job's lifecycle (status,
matches, transaction) runs inside ``job_locks.hold(job_id)`` so transitions are
evaluated against the latest committed state. Across processes the status
columns are additionally updated by compare-and-swap.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager


class JobLockRegistry:
    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[job_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, job_id: str):
        lock = self._lock_for(job_id)
        async with lock:
            yield

    def is_locked(self, job_id: str) -> bool:
        lock = self._locks.get(job_id)
        return lock is not None and lock.locked()


job_locks = JobLockRegistry()
