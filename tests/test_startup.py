from __future__ import annotations

import app
from core.listener_manager import ListenerManager
from core.models import EventDefinition
from core.processor import NotificationProcessor
from fakes import FakeConsumerFactory, FakeNotifier, FakeStore, format_plain


def _manager(factory: FakeConsumerFactory, store: FakeStore) -> ListenerManager:
    processor = NotificationProcessor(store, FakeNotifier(working_endpoints=set()), format_plain)
    return ListenerManager(factory, processor)


def _store(*events: EventDefinition) -> FakeStore:
    store = FakeStore()
    for event in events:
        store.add_event(event)
    return store


def test_known_topics_are_started(caplog) -> None:
    store = _store(
        EventDefinition(id=1, system_name="Shop", event_name="Order Created", topic="orders.created"),
        EventDefinition(id=2, system_name="Billing", event_name="Invoice Paid", topic="invoices.paid"),
        EventDefinition(id=3, system_name="Legacy", event_name="Unbound", topic="  "),
    )
    factory = FakeConsumerFactory()
    manager = _manager(factory, store)

    with caplog.at_level("INFO"):
        assert app.start_known_topics(store, manager) == (2, 1)

    assert manager.active_topics() == ["invoices.paid", "orders.created"]
    assert "Success: 2, Failures: 1" in caplog.text


def test_second_run_counts_already_listening_as_failures() -> None:
    store = _store(EventDefinition(id=1, system_name="Shop", event_name="Order Created", topic="orders.created"))
    factory = FakeConsumerFactory()
    manager = _manager(factory, store)

    assert app.start_known_topics(store, manager) == (1, 0)
    assert app.start_known_topics(store, manager) == (0, 1)
    assert len(factory.created) == 1


def test_no_events_starts_nothing() -> None:
    store = FakeStore()
    factory = FakeConsumerFactory()

    assert app.start_known_topics(store, _manager(factory, store)) == (0, 0)
    assert factory.created == []


def test_broken_topic_does_not_stop_the_others() -> None:
    store = _store(
        EventDefinition(id=1, system_name="Shop", event_name="Order Created", topic="orders.created"),
        EventDefinition(id=2, system_name="Shop", event_name="Order Cancelled", topic="orders.cancelled"),
    )
    factory = FakeConsumerFactory()
    factory.fail_topics.add("orders.created")
    manager = _manager(factory, store)

    assert app.start_known_topics(store, manager) == (1, 1)
    assert manager.active_topics() == ["orders.cancelled"]
