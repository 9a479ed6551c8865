"""Server-Sent Events stream of a job's lifecycle events."""

import asyncio
import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from swiftjobs.dependencies import CurrentIdentity, DBSession
from swiftjobs.events.broker import CompositeBroker, InMemoryBroker, job_channel
from swiftjobs.events.job_events import DomainEvent
from swiftjobs.services.access import load_job, require_viewer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stream"])

_KEEPALIVE_SECONDS = 30


def _sse(event: DomainEvent) -> str:
    return f"event: {event.event_type}\ndata: {event.model_dump_json()}\n\n"


def _local_broker(request: Request) -> InMemoryBroker | None:
    broker = getattr(request.app.state, "broker", None)
    if isinstance(broker, CompositeBroker):
        return broker.local
    if isinstance(broker, InMemoryBroker):
        return broker
    return None


async def _redis_events(request: Request, redis, job_id: str) -> AsyncGenerator[str, None]:
    channel = job_channel(job_id)
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    try:
        while not await request.is_disconnected():
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=_KEEPALIVE_SECONDS)
            if message and message.get("type") == "message":
                data = message.get("data", "")
                if isinstance(data, bytes):
                    data = data.decode()
                event_type = json.loads(data).get("event_type", "message")
                yield f"event: {event_type}\ndata: {data}\n\n"
            else:
                yield ": keepalive\n\n"
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


async def _local_events(request: Request, broker: InMemoryBroker, job_id: str) -> AsyncGenerator[str, None]:
    queue = broker.subscribe(job_id)
    try:
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=_KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _sse(event)
    finally:
        broker.unsubscribe(job_id, queue)


async def _event_generator(request: Request, job_id: str, follow: bool) -> AsyncGenerator[str, None]:
    local = _local_broker(request)
    yield f"event: connected\ndata: {json.dumps({'job_id': job_id})}\n\n"

    # Replay what this process has seen so late subscribers catch up
    if local is not None:
        for event in local.events_for(job_id):
            yield _sse(event)
    if not follow:
        return

    logger.info("SSE subscriber connected (job=%s)", job_id)
    redis = getattr(request.app.state, "redis", None)
    try:
        if redis is not None:
            async for chunk in _redis_events(request, redis, job_id):
                yield chunk
        elif local is not None:
            async for chunk in _local_events(request, local, job_id):
                yield chunk
    except asyncio.CancelledError:
        pass
    finally:
        logger.info("SSE subscriber disconnected (job=%s)", job_id)


@router.get("/jobs/{job_id}/events/stream")
async def stream_job_events(
    job_id: str,
    request: Request,
    identity: CurrentIdentity,
    db: DBSession,
    follow: bool = True,
):
    """Stream the job's status, match and transaction events. ``follow=false`` replays and closes."""
    job = await load_job(db, job_id)
    await require_viewer(db, job, identity)

    return StreamingResponse(
        _event_generator(request, job_id, follow),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
            "Connection": "keep-alive",
        },
    )
