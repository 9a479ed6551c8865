"""Tests for lifecycle events, the broker fan-out and webhook signing."""

import asyncio
import hashlib
import hmac
import json

import pytest

from swiftjobs.events.broker import (
    CompositeBroker,
    EventBroker,
    InMemoryBroker,
    WebhookBroker,
    build_broker,
    job_channel,
)
from swiftjobs.events.job_events import JobEscalated, JobStatusChanged, MatchStatusChanged
from swiftjobs.events.webhook_config import WebhookRegistry, WebhookSubscription
from swiftjobs.events.webhook_emitter import _sign_payload, build_body, emit_event


def _status_event(job_id: str = "job_1") -> JobStatusChanged:
    return JobStatusChanged(job_id=job_id, from_status="matched", to_status="in_progress")


def test_event_envelope():
    event = _status_event()
    assert event.event_type == "job.status_changed"
    assert event.event_id.startswith("evt_")
    assert event.occurred_at.tzinfo is not None


def test_match_event_allows_creation_without_previous_status():
    event = MatchStatusChanged(job_id="job_1", match_id="mtch_1", freelancer_id="usr_fl_a", to_status="pending")
    assert event.from_status is None


def test_body_is_compact_json():
    event = JobEscalated(job_id="job_1", escalation="support", reason="revision limit reached")
    body = json.loads(build_body(event))
    assert body["event_type"] == "job.escalated"
    assert body["escalation"] == "support"
    assert body["event_id"] == event.event_id


def test_signature_is_hmac_sha256():
    body = b'{"job_id":"job_1"}'
    expected = hmac.new(b"s3cret-s3cret-s3cret", body, hashlib.sha256).hexdigest()
    assert _sign_payload(body, "s3cret-s3cret-s3cret") == expected


def test_registry_filters_by_event_type():
    registry = WebhookRegistry()
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="x" * 16))
    registry.register(WebhookSubscription(
        url="https://b.test/hook", secret="y" * 16, event_types=["match.status_changed"],
    ))
    match_event = MatchStatusChanged(job_id="job_1", match_id="mtch_1", freelancer_id="usr_fl_a", to_status="pending")

    assert [s.url for s in registry.get_subscribers(_status_event())] == ["https://a.test/hook"]
    assert len(registry.get_subscribers(match_event)) == 2


def test_registry_scopes_subscription_to_jobs():
    registry = WebhookRegistry()
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="x" * 16, job_ids=["job_1"]))

    assert len(registry.get_subscribers(_status_event("job_1"))) == 1
    assert registry.get_subscribers(_status_event("job_2")) == []


def test_inactive_subscription_receives_nothing():
    registry = WebhookRegistry()
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="x" * 16, active=False))
    assert registry.get_subscribers(_status_event()) == []


def test_registry_replaces_same_url():
    registry = WebhookRegistry()
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="x" * 16))
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="z" * 16))
    assert [s.secret for s in registry.list_all()] == ["z" * 16]
    assert registry.unregister("https://a.test/hook") is True
    assert registry.unregister("https://a.test/hook") is False
    assert registry.list_all() == []


@pytest.mark.asyncio
async def test_emit_without_subscribers_is_noop():
    assert await emit_event(_status_event(), WebhookRegistry()) == []


@pytest.mark.asyncio
async def test_in_memory_broker_delivers_to_job_subscribers():
    broker = InMemoryBroker()
    queue = broker.subscribe("job_1")
    other = broker.subscribe("job_2")

    await broker.publish(_status_event("job_1"))

    assert queue.qsize() == 1
    assert other.qsize() == 0
    assert [e.job_id for e in broker.events_for("job_1")] == ["job_1"]

    broker.unsubscribe("job_1", queue)
    await broker.publish(_status_event("job_1"))
    assert queue.qsize() == 1


@pytest.mark.asyncio
async def test_history_is_bounded():
    broker = InMemoryBroker(history_size=2)
    for _ in range(3):
        await broker.publish(_status_event())
    assert len(broker.history) == 2


class _ExplodingBroker(EventBroker):
    async def publish(self, event):
        raise ConnectionError("redis is down")


@pytest.mark.asyncio
async def test_composite_isolates_failing_transport():
    local = InMemoryBroker()
    broker = CompositeBroker([_ExplodingBroker(), local])

    await broker.publish_all([_status_event(), _status_event()])

    assert len(local.history) == 2
    assert broker.local is local


def test_build_broker_without_redis():
    broker = build_broker(redis=None, registry=WebhookRegistry())
    assert broker.local is not None
    assert job_channel("job_1") == "swiftjobs:events:job:job_1"


def _subscribed_registry() -> WebhookRegistry:
    registry = WebhookRegistry()
    registry.register(WebhookSubscription(url="https://a.test/hook", secret="x" * 16))
    return registry


@pytest.mark.asyncio
async def test_slow_webhook_does_not_hold_up_publish(monkeypatch):
    release = asyncio.Event()
    delivered = []

    async def slow_emit(event, registry=None):
        await release.wait()
        delivered.append(event.event_id)
        return []

    monkeypatch.setattr("swiftjobs.events.broker.emit_event", slow_emit)
    broker = WebhookBroker(_subscribed_registry())
    event = _status_event()

    await asyncio.wait_for(broker.publish(event), timeout=1)
    assert broker.pending == 1
    assert delivered == []

    release.set()
    await broker.drain(timeout=1)
    assert delivered == [event.event_id]
    assert broker.pending == 0


@pytest.mark.asyncio
async def test_drain_cancels_stuck_webhook(monkeypatch):
    async def stuck_emit(event, registry=None):
        await asyncio.sleep(3600)

    monkeypatch.setattr("swiftjobs.events.broker.emit_event", stuck_emit)
    broker = WebhookBroker(_subscribed_registry())
    await broker.publish(_status_event())

    await broker.drain(timeout=0.01)
    assert broker.pending == 0


@pytest.mark.asyncio
async def test_no_subscribers_schedules_nothing():
    broker = WebhookBroker(WebhookRegistry())
    await broker.publish(_status_event())
    assert broker.pending == 0
