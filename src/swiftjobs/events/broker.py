"""Publish/subscribe channel for lifecycle events.

Transport (SSE, websockets, webhooks) sits behind ``EventBroker``; services
only call ``publish`` after the commit that caused the event.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict, deque

from swiftjobs.events.job_events import DomainEvent
from swiftjobs.events.webhook_config import WebhookRegistry, webhook_registry
from swiftjobs.events.webhook_emitter import emit_event

logger = logging.getLogger(__name__)

# Redis pub/sub channel prefix
CHANNEL_PREFIX = "swiftjobs:events"


def job_channel(job_id: str) -> str:
    return f"{CHANNEL_PREFIX}:job:{job_id}"


class EventBroker(ABC):
    """Destination for lifecycle events."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        ...

    async def publish_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)

    async def drain(self, timeout: float | None = None) -> None:
        """Finish deliveries still in flight. Synchronous transports have none."""


class InMemoryBroker(EventBroker):
    """In-process fan-out to asyncio queues, with a short replay history."""

    def __init__(self, history_size: int = 500) -> None:
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self.history: deque[DomainEvent] = deque(maxlen=history_size)

    async def publish(self, event: DomainEvent) -> None:
        self.history.append(event)
        for queue in list(self._subscribers.get(event.job_id, ())):
            queue.put_nowait(event)

    def subscribe(self, job_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[job_id].add(queue)
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(job_id)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[job_id]

    def events_for(self, job_id: str) -> list[DomainEvent]:
        return [e for e in self.history if e.job_id == job_id]


class RedisBroker(EventBroker):
    """Publishes each event as JSON on the job's Redis channel."""

    def __init__(self, redis) -> None:
        self.redis = redis

    async def publish(self, event: DomainEvent) -> None:
        await self.redis.publish(job_channel(event.job_id), event.model_dump_json())


class WebhookBroker(EventBroker):
    """Delivers events to registered webhook subscribers in background tasks.

    ``publish`` returns once delivery is scheduled, so a slow subscriber never
    holds up the request or sweep that produced the event.
    """

    def __init__(self, registry: WebhookRegistry | None = None) -> None:
        self.registry = registry
        self._pending: set[asyncio.Task] = set()

    async def publish(self, event: DomainEvent) -> None:
        if not (self.registry or webhook_registry).get_subscribers(event):
            return
        task = asyncio.create_task(emit_event(event, self.registry), name=f"webhook:{event.event_id}")
        self._pending.add(task)
        task.add_done_callback(self._delivered)

    def _delivered(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Webhook fan-out %s failed: %s", task.get_name(), task.exception())

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for scheduled deliveries; whatever is still running after ``timeout`` is cancelled."""
        if not self._pending:
            return
        _, still_running = await asyncio.wait(set(self._pending), timeout=timeout)
        if still_running:
            for task in still_running:
                task.cancel()
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled %d webhook deliveries still in flight", len(still_running))


class CompositeBroker(EventBroker):
    """Fans out to several brokers; one failing transport never blocks the others."""

    def __init__(self, brokers: list[EventBroker]) -> None:
        self.brokers = brokers

    async def publish(self, event: DomainEvent) -> None:
        for broker in self.brokers:
            try:
                await broker.publish(event)
            except Exception as exc:
                logger.warning(
                    "Failed to publish %s via %s: %s", event.event_type, type(broker).__name__, exc
                )

    async def drain(self, timeout: float | None = None) -> None:
        for broker in self.brokers:
            await broker.drain(timeout)

    @property
    def local(self) -> InMemoryBroker | None:
        for broker in self.brokers:
            if isinstance(broker, InMemoryBroker):
                return broker
        return None


def build_broker(redis=None, registry: WebhookRegistry | None = None) -> CompositeBroker:
    brokers: list[EventBroker] = [InMemoryBroker()]
    if redis is not None:
        brokers.append(RedisBroker(redis))
    brokers.append(WebhookBroker(registry))
    return CompositeBroker(brokers)
