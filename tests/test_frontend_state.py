from __future__ import annotations

from core.models import EventDefinition
from frontend.state import ListenerRow, build_rows


def test_build_rows_sorts_by_topic_and_skips_blank_topics() -> None:
    events = [
        EventDefinition(id=1, system_name="Shop", event_name="Order Created", topic="orders.created"),
        EventDefinition(id=2, system_name="Billing", event_name="Invoice Paid", topic="invoices.paid"),
        EventDefinition(id=3, system_name="Legacy", event_name="Unbound", topic=""),
    ]

    rows = build_rows(events, lambda topic: topic == "orders.created")

    assert rows == [
        ListenerRow(topic="invoices.paid", system_name="Billing", event_name="Invoice Paid", listening=False),
        ListenerRow(topic="orders.created", system_name="Shop", event_name="Order Created", listening=True),
    ]
    assert [row.status_label for row in rows] == ["stopped", "listening"]
