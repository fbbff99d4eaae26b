"""Kafka adapters: per-topic consumer threads and the dead-letter publisher.

Each listened topic gets its own KafkaConsumer polled by a dedicated daemon
thread. kafka-python consumers are not thread-safe, so the consumer is only
touched by that thread; ``stop()`` just raises a flag the loop checks between
records.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from kafka import KafkaConsumer, KafkaProducer, TopicPartition

from core.config import BrokerConfig
from core.error_handler import RetryingErrorHandler
from core.ports import CrashCallback, MessageCallback, RawMessage

LOGGER = logging.getLogger(__name__)


class KafkaTopicListener:
    """Background consumer that feeds one topic's records to a callback."""

    def __init__(
        self,
        topic: str,
        callback: MessageCallback,
        config: BrokerConfig,
        error_handler: RetryingErrorHandler,
        on_crash: Optional[CrashCallback] = None,
    ) -> None:
        self.topic = topic
        self._callback = callback
        self._on_crash = on_crash
        self._config = config
        self._error_handler = error_handler
        self._stopping = threading.Event()
        self._consumer: Optional[KafkaConsumer] = None
        self._thread: Optional[threading.Thread] = None

    def _build_consumer(self) -> KafkaConsumer:
        return KafkaConsumer(
            self.topic,
            bootstrap_servers=list(self._config.bootstrap_servers),
            group_id=self._config.group_id,
            auto_offset_reset=self._config.auto_offset_reset,
            enable_auto_commit=True,
            auto_commit_interval_ms=1000,
            session_timeout_ms=30000,
            heartbeat_interval_ms=10000,
        )

    def start(self) -> None:
        """Connect the consumer and start the polling thread.

        The consumer is created here, on the caller's thread, so connection
        failures surface to whoever asked to start listening.
        """

        if self._thread is not None:
            raise RuntimeError(f"Listener for topic {self.topic} was already started")
        self._consumer = self._build_consumer()
        self._thread = threading.Thread(
            target=self._run,
            name=f"listener-{self.topic}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop delivering records; an in-flight callback is left to finish."""

        self._stopping.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=self._config.shutdown_timeout)
        if thread.is_alive():
            LOGGER.warning(
                "Listener for topic %s still finishing a message after %.1fs",
                self.topic,
                self._config.shutdown_timeout,
            )

    def _run(self) -> None:
        consumer = self._consumer
        if consumer is None:
            raise RuntimeError(f"Listener for topic {self.topic} has no consumer; call start() first")
        LOGGER.info("Consumer thread started for topic %s", self.topic)
        try:
            while not self._stopping.is_set():
                batches = consumer.poll(timeout_ms=self._config.poll_timeout_ms)
                pending = list(batches.items())
                for position, (partition, records) in enumerate(pending):
                    for index, record in enumerate(records):
                        if self._stopping.is_set():
                            self._rewind(consumer, [(partition, records[index:])] + pending[position + 1:])
                            return
                        LOGGER.debug(
                            "Received record from %s[%s]@%s",
                            record.topic,
                            record.partition,
                            record.offset,
                        )
                        self._error_handler.dispatch(record.topic, record.value, self._callback)
        except Exception:
            LOGGER.exception("Consumer thread for topic %s crashed", self.topic)
            if self._on_crash is not None:
                self._on_crash(self.topic, self)
        finally:
            try:
                consumer.close()
            except Exception:
                LOGGER.exception("Failed to close consumer for topic %s", self.topic)
            LOGGER.info("Consumer thread stopped for topic %s", self.topic)

    def _rewind(self, consumer: KafkaConsumer, unprocessed: list[tuple[TopicPartition, list]]) -> None:
        """Seek back to the first undelivered record of each partition.

        ``poll()`` has already moved the positions past the whole batch and
        ``close()`` commits them, so skipped records would otherwise be lost
        to the consumer group.
        """

        for partition, records in unprocessed:
            if not records:
                continue
            consumer.seek(partition, records[0].offset)
            LOGGER.info(
                "Rewound %s[%s] to offset %s (%s records not delivered before stop)",
                partition.topic,
                partition.partition,
                records[0].offset,
                len(records),
            )


class KafkaListenerFactory:
    """ConsumerFactoryPort implementation producing KafkaTopicListener objects."""

    def __init__(self, config: BrokerConfig, error_handler: RetryingErrorHandler) -> None:
        self._config = config
        self._error_handler = error_handler

    def create(
        self,
        topic: str,
        callback: MessageCallback,
        on_crash: Optional[CrashCallback] = None,
    ) -> KafkaTopicListener:
        return KafkaTopicListener(topic, callback, self._config, self._error_handler, on_crash)


class KafkaDeadLetterPublisher:
    """Publishes failed records to ``<topic><suffix>``, partition 0.

    The producer is created on first use so a broker outage at boot does not
    prevent listeners from being managed.
    """

    def __init__(self, config: BrokerConfig, producer: Optional[KafkaProducer] = None) -> None:
        self._config = config
        self._producer = producer
        self._lock = threading.Lock()

    def _get_producer(self) -> KafkaProducer:
        with self._lock:
            if self._producer is None:
                self._producer = KafkaProducer(
                    bootstrap_servers=list(self._config.bootstrap_servers),
                    acks="all",
                    retries=3,
                )
            return self._producer

    def publish(self, topic: str, value: RawMessage, error: BaseException) -> None:
        dead_letter_topic = self._config.dead_letter_topic(topic)
        payload = value.encode("utf-8") if isinstance(value, str) else value
        cause = error.__cause__ or error
        headers = [
            ("dlt-original-topic", topic.encode("utf-8")),
            ("dlt-exception-type", type(cause).__name__.encode("utf-8")),
            ("dlt-exception-message", str(cause).encode("utf-8")),
        ]
        LOGGER.error("Publishing message to DLT topic '%s' due to exception: %s", dead_letter_topic, cause)
        future = self._get_producer().send(dead_letter_topic, value=payload, partition=0, headers=headers)
        future.get(timeout=10)

    def close(self) -> None:
        with self._lock:
            producer, self._producer = self._producer, None
        if producer is not None:
            producer.flush()
            producer.close()
