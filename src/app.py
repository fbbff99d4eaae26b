"""Application entry point for the eventbell notifier."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import threading
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.kafka_listener import KafkaDeadLetterPublisher, KafkaListenerFactory
from adapters.notification_formatting import format_notification
from adapters.sqlite_event_store import SQLiteEventStore
from client import build_notifier
from core.config import BrokerConfig, DeliveryConfig, RetryPolicy
from core.error_handler import RetryingErrorHandler
from core.listener_manager import ListenerManager
from core.ports import EventStorePort
from core.processor import NotificationProcessor

NAME = "EVENTBELL"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/eventbell.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # kafka-python is chatty at DEBUG (every fetch and heartbeat).
    logging.getLogger("kafka").setLevel(max(level, logging.INFO))


@dataclass
class Services:
    """Everything the notifier service wires together at boot."""

    store: SQLiteEventStore
    manager: ListenerManager
    dead_letter: KafkaDeadLetterPublisher


def build_services() -> Services:
    broker_config = BrokerConfig(
        bootstrap_servers=settings.BOOTSTRAP_SERVERS,
        group_id=settings.GROUP_ID,
        auto_offset_reset=settings.AUTO_OFFSET_RESET,
        poll_timeout_ms=settings.POLL_TIMEOUT_MS,
        dead_letter_suffix=settings.DEAD_LETTER_SUFFIX,
        shutdown_timeout=settings.SHUTDOWN_TIMEOUT,
    )
    retry_policy = RetryPolicy(
        max_retries=settings.BROKER_MAX_RETRIES,
        initial_interval=settings.BROKER_INITIAL_INTERVAL,
        multiplier=settings.BROKER_MULTIPLIER,
        max_interval=settings.BROKER_MAX_INTERVAL,
    )
    delivery_config = DeliveryConfig(
        api_base=settings.TELEGRAM_API_BASE,
        max_attempts=settings.DELIVERY_MAX_ATTEMPTS,
        base_delay=settings.DELIVERY_BASE_DELAY,
        timeout=settings.DELIVERY_TIMEOUT,
    )

    store = SQLiteEventStore(settings.DB_PATH)
    store.init_db()

    notifier = build_notifier(delivery_config)
    processor = NotificationProcessor(store=store, notifier=notifier, formatter=format_notification)

    dead_letter = KafkaDeadLetterPublisher(broker_config)
    error_handler = RetryingErrorHandler(retry_policy, dead_letter)
    manager = ListenerManager(KafkaListenerFactory(broker_config, error_handler), processor)
    return Services(store=store, manager=manager, dead_letter=dead_letter)


def start_known_topics(store: EventStorePort, manager: ListenerManager) -> tuple[int, int]:
    """Start a listener for every known event topic; return (success, failure)."""

    logger = logging.getLogger(__name__)
    events = store.list_events()
    if not events:
        logger.info("No events found - no consumers to initialize")
        return 0, 0

    logger.info("Found %s events, starting consumers...", len(events))
    success = 0
    failure = 0
    for event in events:
        if not event.topic or not event.topic.strip():
            logger.warning("Event '%s' (ID: %s) has no topic configured - skipping", event.event_name, event.id)
            failure += 1
            continue

        if manager.start_listening(event.topic):
            logger.info("Started consumer for event '%s' (topic: '%s')", event.event_name, event.topic)
            success += 1
        else:
            logger.warning(
                "Failed to start or already listening to topic '%s' for event '%s'",
                event.topic,
                event.event_name,
            )
            failure += 1

    logger.info("Consumer initialization completed - Success: %s, Failures: %s", success, failure)
    if failure:
        logger.warning("Some consumers failed to initialize. Check logs for details.")
    return success, failure


def _shutdown(services: Services) -> None:
    logger = logging.getLogger(__name__)
    stopped = services.manager.stop_all()
    logger.info("Stopped %s listeners", stopped)
    services.dead_letter.close()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting eventbell")
    services = build_services()
    start_known_topics(services.store, services.manager)

    stop_requested = threading.Event()

    def _request_stop(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    logger.info("Listening on %s topics. Waiting for messages...", len(services.manager.active_topics()))
    try:
        while not stop_requested.wait(timeout=1.0):
            pass
    finally:
        _shutdown(services)


def _admin() -> None:
    # Console logging would draw over the TUI, so it stays unconfigured here.
    from frontend.app import ListenerPanelApp

    services = build_services()
    try:
        ListenerPanelApp(services.store, services.manager).run()
    finally:
        _shutdown(services)


def _topics() -> None:
    store = SQLiteEventStore(settings.DB_PATH)
    store.init_db()
    events = store.list_events()
    if not events:
        print("No events configured.")
        return
    for event in events:
        print(f"{event.id}. {event.system_name} | {event.event_name} | {event.topic}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="eventbell")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start listeners for every known event topic")
    subparsers.add_parser("admin", help="Launch the listener control panel")
    subparsers.add_parser("topics", help="List known events and their topics")

    args = parser.parse_args(argv)
    if args.command == "admin":
        _admin()
        return
    if args.command == "topics":
        _topics()
        return
    _run()


if __name__ == "__main__":
    main()
