from __future__ import annotations

import sqlite3

import pytest

from adapters.sqlite_event_store import SQLiteEventStore
from core.models import EventDefinition, SubscriptionRecord


@pytest.fixture
def store(tmp_path) -> SQLiteEventStore:
    db_path = str(tmp_path / "events.db")
    store = SQLiteEventStore(db_path)
    store.init_db()
    conn = sqlite3.connect(db_path)
    with conn:
        conn.executemany(
            "INSERT INTO events (id, system_name, event_name, kafka_topic, description) VALUES (?, ?, ?, ?, ?)",
            [
                (1, "Shop", "Order Created", "orders.created", "New orders"),
                (2, "Billing", "Invoice Paid", "invoices.paid", None),
            ],
        )
        conn.executemany(
            "INSERT INTO users (id, username, telegram_chat_id, telegram_recipients) VALUES (?, ?, ?, ?)",
            [
                (1, "bob", None, None),
                (2, "ada", "111", "222;333"),
            ],
        )
        conn.executemany(
            "INSERT INTO subscriptions (user_id, event_id) VALUES (?, ?)",
            [(1, 1), (2, 1)],
        )
    conn.close()
    return store


def test_find_event_by_topic(store: SQLiteEventStore) -> None:
    assert store.find_event_by_topic("orders.created") == EventDefinition(
        id=1,
        system_name="Shop",
        event_name="Order Created",
        topic="orders.created",
        description="New orders",
    )
    assert store.find_event_by_topic("missing") is None


def test_find_subscriptions_by_event_id(store: SQLiteEventStore) -> None:
    assert store.find_subscriptions_by_event_id(1) == [
        SubscriptionRecord(username="ada", primary_endpoint="111", additional_endpoints="222;333"),
        SubscriptionRecord(username="bob", primary_endpoint=None, additional_endpoints=None),
    ]
    assert store.find_subscriptions_by_event_id(2) == []


def test_list_events(store: SQLiteEventStore) -> None:
    assert [event.topic for event in store.list_events()] == ["orders.created", "invoices.paid"]


def test_topics_are_unique(store: SQLiteEventStore, tmp_path) -> None:
    conn = sqlite3.connect(str(tmp_path / "events.db"))
    with pytest.raises(sqlite3.IntegrityError):
        with conn:
            conn.execute(
                "INSERT INTO events (system_name, event_name, kafka_topic) VALUES (?, ?, ?)",
                ("Shop", "Duplicate", "orders.created"),
            )
    conn.close()
