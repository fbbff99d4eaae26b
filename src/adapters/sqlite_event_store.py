"""SQLite event store adapter.

Implements the core EventStorePort on top of the tables the CRUD side of the
application writes to. The core only reads; rows are copied into frozen
dataclasses before the connection is closed so nothing storage-bound leaks
into listener threads.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from core.models import EventDefinition, SubscriptionRecord


class SQLiteEventStore:
    """Thin SQLite wrapper that satisfies the EventStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # A fresh connection per call keeps the store safe to share across
        # listener threads.
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - events: event definitions, one per Kafka topic
        - users: notification endpoints per user
        - subscriptions: which user follows which event
        """

        with self._connect() as conn:
            # events maps external system events onto broker topics.
            # Fields:
            # - kafka_topic: topic the event's occurrences are published to (UNIQUE)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    system_name TEXT NOT NULL,
                    event_name TEXT NOT NULL,
                    kafka_topic TEXT NOT NULL UNIQUE,
                    description TEXT
                )
                """
            )
            # users keeps only what delivery needs.
            # Fields:
            # - telegram_chat_id: chat id captured when the user activated the bot
            # - telegram_recipients: extra chat ids, semicolon-delimited
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    telegram_chat_id TEXT,
                    telegram_recipients TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    event_id INTEGER NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                    UNIQUE (user_id, event_id)
                )
                """
            )

    @staticmethod
    def _event_from_row(row: sqlite3.Row) -> EventDefinition:
        return EventDefinition(
            id=int(row["id"]),
            system_name=row["system_name"],
            event_name=row["event_name"],
            topic=row["kafka_topic"],
            description=row["description"],
        )

    def find_event_by_topic(self, topic: str) -> Optional[EventDefinition]:
        """Return the event bound to ``topic``, if any."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, system_name, event_name, kafka_topic, description
                FROM events WHERE kafka_topic = ?
                """,
                (topic,),
            ).fetchone()
        return self._event_from_row(row) if row else None

    def find_subscriptions_by_event_id(self, event_id: int) -> list[SubscriptionRecord]:
        """Return subscriber endpoint rows for an event, ordered by username."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT u.username, u.telegram_chat_id, u.telegram_recipients
                FROM subscriptions s
                JOIN users u ON u.id = s.user_id
                WHERE s.event_id = ?
                ORDER BY u.username
                """,
                (event_id,),
            ).fetchall()
            return [
                SubscriptionRecord(
                    username=row["username"],
                    primary_endpoint=row["telegram_chat_id"],
                    additional_endpoints=row["telegram_recipients"],
                )
                for row in rows
            ]

    def list_events(self) -> list[EventDefinition]:
        """Return all events ordered by id."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, system_name, event_name, kafka_topic, description FROM events ORDER BY id"
            ).fetchall()
        return [self._event_from_row(row) for row in rows]
