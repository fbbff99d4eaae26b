"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BrokerConfig:
    """Kafka consumer group settings shared by every topic listener."""

    bootstrap_servers: tuple[str, ...]
    group_id: str
    auto_offset_reset: str = "earliest"
    poll_timeout_ms: int = 1000
    dead_letter_suffix: str = ".DLT"
    shutdown_timeout: float = 5.0

    def dead_letter_topic(self, topic: str) -> str:
        return f"{topic}{self.dead_letter_suffix}"


@dataclass(frozen=True)
class RetryPolicy:
    """Broker-level redelivery policy applied before dead-lettering."""

    max_retries: int = 3
    initial_interval: float = 1.0
    multiplier: float = 2.0
    max_interval: float = 10.0


@dataclass(frozen=True)
class DeliveryConfig:
    """Telegram Bot API delivery settings consumed by the notifier adapter."""

    api_base: str = "https://api.telegram.org"
    max_attempts: int = 3
    base_delay: float = 1.0
    timeout: float = 10.0
