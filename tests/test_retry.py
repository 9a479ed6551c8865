"""Tests for the transient-failure retry decorator."""

import pytest

from swiftjobs.errors.exceptions import NotFoundError, TransientError
from swiftjobs.services.retry import with_retry


@pytest.mark.asyncio
async def test_retries_until_success():
    calls = []

    @with_retry(max_retries=2, retry_delay=0)
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise TransientError("storage hiccup")
        return "ok"

    assert await flaky() == "ok"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    calls = []

    @with_retry(max_retries=1, retry_delay=0)
    async def down():
        calls.append(1)
        raise TransientError("still down")

    with pytest.raises(TransientError):
        await down()
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_domain_errors_are_not_retried():
    calls = []

    @with_retry(max_retries=3, retry_delay=0)
    async def missing():
        calls.append(1)
        raise NotFoundError("Job", "job_missing")

    with pytest.raises(NotFoundError):
        await missing()
    assert len(calls) == 1
