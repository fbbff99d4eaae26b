"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Kafka, Telegram or storage-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional, Tuple


@dataclass(frozen=True)
class EventDefinition:
    """An event exposed by an external system and bound to one topic."""

    id: int
    system_name: str
    event_name: str
    topic: str
    description: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRecord:
    """Subscriber row as the store returns it.

    ``additional_endpoints`` is still the raw semicolon-delimited string.
    """

    username: str
    primary_endpoint: Optional[str]
    additional_endpoints: Optional[str]


@dataclass(frozen=True)
class Subscriber:
    """Detached snapshot of a user's notification endpoints."""

    username: str
    primary_endpoint: Optional[str] = None
    additional_endpoints: Tuple[str, ...] = ()

    def endpoints(self) -> Iterator[str]:
        if self.primary_endpoint:
            yield self.primary_endpoint
        yield from self.additional_endpoints


@dataclass(frozen=True)
class NotificationRecord:
    """Structured form of an inbound broker message."""

    event_tag: Optional[str] = None
    system_tag: Optional[str] = None
    timestamp: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    free_text_message: Optional[str] = None
    severity: Optional[str] = None
    extra_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, text: str, timestamp: datetime) -> "NotificationRecord":
        return cls(free_text_message=text, timestamp=timestamp)


@dataclass(frozen=True)
class DeliverySummary:
    """Aggregate delivery result for one processed message."""

    topic: str
    event_name: str
    success: int
    failure: int
