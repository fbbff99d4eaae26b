"""Core message processing pipeline.

This module is integration-agnostic. It only relies on ports for storage,
formatting and notifications, so the Kafka and Telegram adapters can be
swapped without changes here.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import MessageProcessingError
from core.models import DeliverySummary
from core.parser import parse_message
from core.ports import EventStorePort, Formatter, NotifierPort, RawMessage
from core.resolver import NotificationTargetResolver

LOGGER = logging.getLogger(__name__)


class NotificationProcessor:
    """Orchestrates parsing, target resolution, formatting and delivery."""

    def __init__(
        self,
        store: EventStorePort,
        notifier: NotifierPort,
        formatter: Formatter,
    ) -> None:
        self._resolver = NotificationTargetResolver(store)
        self._notifier = notifier
        self._formatter = formatter

    def process(self, topic: str, raw: RawMessage) -> Optional[DeliverySummary]:
        """Process one inbound message for ``topic``.

        Returns None when there is nobody to notify. Failures after parsing
        are raised as MessageProcessingError so the broker retry policy can
        redeliver or dead-letter the record.
        """

        LOGGER.info("Processing message from topic '%s'", topic)
        # Parsing never fails; malformed payloads degrade to raw text.
        record = parse_message(raw)

        try:
            targets = self._resolver.resolve(topic)
            if targets is None:
                LOGGER.warning("No event found for topic '%s'. Skipping message processing.", topic)
                return None

            event = targets.event
            if not targets.subscribers:
                LOGGER.info(
                    "No subscribers found for event '%s' (topic: %s). Skipping notifications.",
                    event.event_name,
                    topic,
                )
                return None

            LOGGER.info(
                "Found %s subscribers for event '%s' (topic: %s)",
                len(targets.subscribers),
                event.event_name,
                topic,
            )
            text = self._formatter(record, event)

            success = 0
            failure = 0
            for subscriber in targets.subscribers:
                if self._notifier.send_to_subscriber(subscriber, text):
                    success += 1
                else:
                    failure += 1
        except Exception as exc:
            LOGGER.exception("Error processing message from topic '%s'", topic)
            raise MessageProcessingError(topic, f"Failed to process message from topic '{topic}'") from exc

        LOGGER.info(
            "Notification processing completed for topic '%s': success=%s, failure=%s",
            topic,
            success,
            failure,
        )
        return DeliverySummary(
            topic=topic,
            event_name=event.event_name,
            success=success,
            failure=failure,
        )
