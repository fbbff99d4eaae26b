"""Dynamic per-topic listener management.

The manager owns the registry of running topic listeners. Listeners can be
started and stopped at runtime from any thread while other listeners are
delivering messages; the registry lock is the only synchronization point.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from core.models import DeliverySummary
from core.ports import ConsumerFactoryPort, RawMessage, TopicListenerPort
from core.processor import NotificationProcessor

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListenerHandle:
    """Runtime state for one listened topic."""

    topic: str
    listener: TopicListenerPort
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ListenerManager:
    """Starts, stops and deduplicates topic listeners."""

    def __init__(self, consumer_factory: ConsumerFactoryPort, processor: NotificationProcessor) -> None:
        self._consumer_factory = consumer_factory
        self._processor = processor
        self._lock = threading.Lock()
        self._handles: dict[str, ListenerHandle] = {}
        # Topics whose listener is being created outside the lock.
        self._starting: set[str] = set()

    def start_listening(self, topic: str) -> bool:
        """Start a listener for ``topic``.

        Returns False for a blank topic, when the topic is already listened
        to, or when the listener could not be started.
        """

        if not topic or not topic.strip():
            LOGGER.warning("Cannot start listening to an empty topic")
            return False

        with self._lock:
            if topic in self._handles or topic in self._starting:
                LOGGER.info("Already listening to topic: %s", topic)
                return False
            self._starting.add(topic)

        handle: Optional[ListenerHandle] = None
        try:
            listener = self._consumer_factory.create(topic, self.process_message, self._forget_crashed)
            listener.start()
            handle = ListenerHandle(topic=topic, listener=listener)
        except Exception:
            LOGGER.exception("Failed to start listening to topic %s", topic)
        finally:
            with self._lock:
                self._starting.discard(topic)
                if handle is not None:
                    self._handles[topic] = handle

        if handle is None:
            return False
        LOGGER.info("Started listening to topic: %s", topic)
        return True

    def stop_listening(self, topic: str) -> bool:
        """Stop the listener for ``topic``; False if it was not listened to.

        A callback already running for the topic is allowed to finish.
        """

        with self._lock:
            handle = self._handles.pop(topic, None)
        if handle is None:
            LOGGER.info("Not currently listening to topic: %s", topic)
            return False

        try:
            handle.listener.stop()
        except Exception:
            LOGGER.exception("Error while stopping listener for topic %s", topic)
        LOGGER.info("Stopped listening to topic: %s", topic)
        return True

    def _forget_crashed(self, topic: str, listener: TopicListenerPort) -> None:
        with self._lock:
            handle = self._handles.get(topic)
            if handle is not None and handle.listener is listener:
                del self._handles[topic]
                LOGGER.error("Listener for topic %s crashed and was unregistered", topic)

    def is_listening(self, topic: str) -> bool:
        with self._lock:
            return topic in self._handles

    def active_topics(self) -> list[str]:
        with self._lock:
            return sorted(self._handles)

    def stop_all(self) -> int:
        """Stop every listener and return how many were stopped."""

        stopped = 0
        for topic in self.active_topics():
            if self.stop_listening(topic):
                stopped += 1
        return stopped

    def process_message(self, topic: str, raw: RawMessage) -> Optional[DeliverySummary]:
        """Callback invoked by a topic listener for each inbound record."""

        return self._processor.process(topic, raw)
