"""Webhook subscribers for job lifecycle events.

Subscribers are kept in process memory, keyed by URL. A subscriber can narrow
what it receives by event type and by job; empty filters receive everything.
"""

from dataclasses import dataclass, field

from swiftjobs.events.job_events import DomainEvent


@dataclass
class WebhookSubscription:
    url: str
    secret: str
    event_types: list[str] = field(default_factory=list)
    job_ids: list[str] = field(default_factory=list)
    active: bool = True

    def wants(self, event: DomainEvent) -> bool:
        if not self.active:
            return False
        if self.event_types and event.event_type not in self.event_types:
            return False
        return not self.job_ids or event.job_id in self.job_ids


class WebhookRegistry:
    def __init__(self) -> None:
        self._by_url: dict[str, WebhookSubscription] = {}

    def register(self, subscription: WebhookSubscription) -> None:
        """Add a subscriber; an existing subscription for the same URL is replaced."""
        self._by_url.pop(subscription.url, None)
        self._by_url[subscription.url] = subscription

    def unregister(self, url: str) -> bool:
        return self._by_url.pop(url, None) is not None

    def get_subscribers(self, event: DomainEvent) -> list[WebhookSubscription]:
        return [s for s in self._by_url.values() if s.wants(event)]

    def list_all(self) -> list[WebhookSubscription]:
        return list(self._by_url.values())


# Shared by the admin routes and the application's broker
webhook_registry = WebhookRegistry()
