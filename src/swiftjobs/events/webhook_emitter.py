"""Webhook delivery of lifecycle events with HMAC-SHA256 signing."""

import hashlib
import hmac
import json
import logging

import httpx

from swiftjobs.config import settings
from swiftjobs.events.job_events import DomainEvent
from swiftjobs.services.retry import with_retry

from .webhook_config import WebhookRegistry, WebhookSubscription, webhook_registry

logger = logging.getLogger(__name__)


class WebhookDeliveryError(Exception):
    """Subscriber unreachable or answered with a server error."""


def _sign_payload(body: bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature over the raw JSON body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def build_body(event: DomainEvent) -> bytes:
    return json.dumps(event.model_dump(mode="json"), separators=(",", ":")).encode("utf-8")


async def emit_event(event: DomainEvent, registry: WebhookRegistry | None = None) -> list[dict]:
    """Deliver an event to all matching subscribers.

    Returns a list of delivery results (url, status, error).
    """
    subscribers = (registry or webhook_registry).get_subscribers(event)
    if not subscribers:
        return []

    body = build_body(event)
    results = []
    for sub in subscribers:
        try:
            status = await _deliver(body, event.event_type, sub)
            results.append({"url": sub.url, "status": status, "error": None})
        except (WebhookDeliveryError, httpx.HTTPError) as exc:
            logger.warning("Webhook delivery failed to %s: %s", sub.url, exc)
            results.append({"url": sub.url, "status": None, "error": str(exc)})
    return results


@with_retry(
    max_retries=settings.retry_max_attempts - 1,
    retry_delay=settings.retry_base_delay_seconds,
    retryable_exceptions=(WebhookDeliveryError, httpx.TransportError),
)
async def _deliver(body: bytes, event_type: str, sub: WebhookSubscription) -> int:
    """POST a signed body to one subscriber; server errors are retried."""
    headers = {
        "Content-Type": "application/json",
        "X-SwiftJobs-Signature": _sign_payload(body, sub.secret),
        "X-SwiftJobs-Event": event_type,
    }
    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await client.post(sub.url, content=body, headers=headers)
    if resp.status_code >= 500:
        raise WebhookDeliveryError(f"HTTP {resp.status_code}")
    if resp.status_code >= 300:
        logger.warning("Webhook %s rejected %s with HTTP %d", sub.url, event_type, resp.status_code)
    return resp.status_code
