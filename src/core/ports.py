"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, broker and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence, Union

from core.models import EventDefinition, NotificationRecord, Subscriber, SubscriptionRecord

RawMessage = Union[bytes, str]
MessageCallback = Callable[[str, RawMessage], object]
Formatter = Callable[[NotificationRecord, EventDefinition], str]
CrashCallback = Callable[[str, "TopicListenerPort"], None]


class EventStorePort(Protocol):
    """Read-only event and subscription lookups required by the core."""

    def find_event_by_topic(self, topic: str) -> Optional[EventDefinition]:
        ...

    def find_subscriptions_by_event_id(self, event_id: int) -> Sequence[SubscriptionRecord]:
        ...

    def list_events(self) -> Sequence[EventDefinition]:
        ...


class NotifierPort(Protocol):
    """Notification delivery operations required by the core pipeline."""

    def send(self, endpoint: str, text: str) -> bool:
        ...

    def send_to_subscriber(self, subscriber: Subscriber, text: str) -> bool:
        ...


class TopicListenerPort(Protocol):
    """A running consumer bound to a single topic."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class ConsumerFactoryPort(Protocol):
    """Creates (but does not start) a listener for one topic.

    ``on_crash`` is called from the listener thread if it dies unexpectedly.
    """

    def create(
        self,
        topic: str,
        callback: MessageCallback,
        on_crash: Optional[CrashCallback] = None,
    ) -> TopicListenerPort:
        ...


class DeadLetterPort(Protocol):
    """Receives records whose processing permanently failed."""

    def publish(self, topic: str, value: RawMessage, error: BaseException) -> None:
        ...
