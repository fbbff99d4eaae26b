"""Broker-level retry and dead-letter policy (core domain).

Every record handed to a topic callback goes through ``RetryingErrorHandler``:
failures are redelivered with exponential backoff, and records that keep
failing, or fail with a non-retryable cause, are published to the topic's
dead-letter topic so the listener can move on.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Iterator, Optional, Tuple, Type

from core.config import RetryPolicy
from core.ports import DeadLetterPort, MessageCallback, RawMessage
from core.retry import backoff_delays

LOGGER = logging.getLogger(__name__)

# Malformed payload, invalid argument and null-reference style failures will
# not succeed on redelivery.
NOT_RETRYABLE: Tuple[Type[BaseException], ...] = (
    json.JSONDecodeError,
    ValueError,
    TypeError,
    AttributeError,
)


def _cause_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def is_retryable(error: BaseException) -> bool:
    """Return False if the error or anything in its cause chain is not retryable."""

    return not any(isinstance(cause, NOT_RETRYABLE) for cause in _cause_chain(error))


class RetryingErrorHandler:
    """Invokes a record callback under the retry-then-dead-letter contract."""

    def __init__(
        self,
        policy: RetryPolicy,
        dead_letter: DeadLetterPort,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._policy = policy
        self._dead_letter = dead_letter
        self._sleep = sleep

    def dispatch(self, topic: str, value: RawMessage, callback: MessageCallback) -> bool:
        """Run ``callback`` for one record; return False if it was dead-lettered."""

        delays = backoff_delays(
            self._policy.max_retries,
            self._policy.initial_interval,
            self._policy.multiplier,
            self._policy.max_interval,
        )
        attempt = 1
        while True:
            try:
                callback(topic, value)
                return True
            except Exception as exc:
                if not is_retryable(exc):
                    LOGGER.error(
                        "Non-retryable failure for message from topic '%s': %s",
                        topic,
                        exc,
                    )
                    self._recover(topic, value, exc)
                    return False

                delay = next(delays, None)
                if delay is None:
                    LOGGER.error(
                        "Retries exhausted after %s attempts for message from topic '%s': %s",
                        attempt,
                        topic,
                        exc,
                    )
                    self._recover(topic, value, exc)
                    return False

                attempt += 1
                LOGGER.warning(
                    "Retry attempt %s for message from topic '%s' in %.1fs due to: %s",
                    attempt,
                    topic,
                    delay,
                    exc,
                )
                self._sleep(delay)

    def _recover(self, topic: str, value: RawMessage, error: BaseException) -> None:
        try:
            self._dead_letter.publish(topic, value, error)
        except Exception:
            LOGGER.exception("Failed to publish message from topic '%s' to the dead-letter topic", topic)
