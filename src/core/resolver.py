"""Notification target resolution (core domain)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from core.models import EventDefinition, Subscriber, SubscriptionRecord
from core.ports import EventStorePort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationTargets:
    """The event bound to a topic and snapshots of its subscribers."""

    event: EventDefinition
    subscribers: Tuple[Subscriber, ...]


def split_endpoints(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a semicolon-delimited recipient list, dropping blanks."""

    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(";") if part.strip())


def snapshot_subscriber(record: SubscriptionRecord) -> Subscriber:
    primary = (record.primary_endpoint or "").strip() or None
    return Subscriber(
        username=record.username,
        primary_endpoint=primary,
        additional_endpoints=split_endpoints(record.additional_endpoints),
    )


class NotificationTargetResolver:
    """Finds the event behind a topic and who should hear about it."""

    def __init__(self, store: EventStorePort) -> None:
        self._store = store

    def resolve(self, topic: str) -> Optional[NotificationTargets]:
        """Return targets for ``topic`` or None when no event is bound to it.

        Subscribers are copied into plain snapshots here, before the data
        leaves the store call, so delivery never holds storage-bound objects.
        """

        event = self._store.find_event_by_topic(topic)
        if event is None:
            return None

        records = self._store.find_subscriptions_by_event_id(event.id)
        subscribers = tuple(snapshot_subscriber(record) for record in records)
        for subscriber in subscribers:
            LOGGER.debug(
                "Resolved subscriber %s (primary=%s, additional=%s)",
                subscriber.username,
                subscriber.primary_endpoint,
                len(subscriber.additional_endpoints),
            )
        return NotificationTargets(event=event, subscribers=subscribers)
