from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from core.parser import parse_message

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _now() -> datetime:
    return FIXED_NOW


def test_parses_known_fields_and_keeps_nested_data() -> None:
    payload = {
        "event": "order.created",
        "system": "shop",
        "title": "New order",
        "description": "Order #42 was placed",
        "message": "Check the warehouse",
        "severity": "warning",
        "timestamp": "2024-03-05T10:15:30",
        "data": {
            "order_id": 42,
            "paid": True,
            "total": 19.99,
            "customer": {"name": "Ada", "tags": ["vip", "returning"]},
        },
    }

    record = parse_message(json.dumps(payload).encode("utf-8"), now=_now)

    assert record.event_tag == "order.created"
    assert record.system_tag == "shop"
    assert record.title == "New order"
    assert record.description == "Order #42 was placed"
    assert record.free_text_message == "Check the warehouse"
    assert record.severity == "warning"
    assert record.timestamp == datetime(2024, 3, 5, 10, 15, 30)
    assert record.extra_data == payload["data"]
    assert list(record.extra_data) == ["order_id", "paid", "total", "customer"]


def test_ignores_unknown_fields() -> None:
    record = parse_message('{"title": "Hi", "unexpected": {"a": 1}}', now=_now)

    assert record.title == "Hi"
    assert record.extra_data == {}
    assert record.free_text_message is None


def test_coerces_scalar_text_fields() -> None:
    record = parse_message('{"title": 7, "severity": true}', now=_now)

    assert record.title == "7"
    assert record.severity == "true"


def test_epoch_timestamp_is_accepted() -> None:
    record = parse_message('{"timestamp": 0}', now=_now)

    assert record.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw",
    [
        "server restarted",
        '{"title": "truncated',
        "[1, 2, 3]",
        '"just a string"',
        '{"data": [1, 2]}',
        '{"title": {"nested": true}}',
        '{"timestamp": "yesterday"}',
        "[" * 100000,
        "",
    ],
)
def test_malformed_payload_falls_back_to_raw_text(raw: str) -> None:
    record = parse_message(raw, now=_now)

    assert record.free_text_message == raw
    assert record.timestamp == FIXED_NOW
    assert record.title is None
    assert record.extra_data == {}


def test_undecodable_bytes_never_raise() -> None:
    record = parse_message(b"\xff\xfe not json", now=_now)

    assert record.free_text_message is not None
    assert "not json" in record.free_text_message
