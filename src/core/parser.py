"""Inbound payload parsing (core domain).

Producers are external systems we do not control, so parsing is tolerant:
anything that is not a well-formed notification object degrades to a record
carrying the raw text.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from core.models import NotificationRecord
from core.ports import RawMessage

LOGGER = logging.getLogger(__name__)

_TEXT_FIELDS = {
    "event": "event_tag",
    "system": "system_tag",
    "title": "title",
    "description": "description",
    "message": "free_text_message",
    "severity": "severity",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def decode_raw(raw: RawMessage) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _as_text(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"Field '{name}' must be a scalar, got {type(value).__name__}")


def _as_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("timestamp must be an ISO-8601 string or epoch seconds")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise ValueError("timestamp must be an ISO-8601 string or epoch seconds")


def _decode_record(text: str) -> NotificationRecord:
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

    fields: dict[str, Any] = {}
    for key, attribute in _TEXT_FIELDS.items():
        fields[attribute] = _as_text(key, payload.get(key))

    data = payload.get("data")
    if data is None:
        data = {}
    elif not isinstance(data, dict):
        raise ValueError("Field 'data' must be a JSON object")

    return NotificationRecord(
        timestamp=_as_timestamp(payload.get("timestamp")),
        extra_data=data,
        **fields,
    )


def parse_message(
    raw: RawMessage,
    now: Callable[[], datetime] = _now,
) -> NotificationRecord:
    """Return a NotificationRecord for ``raw``; never raises.

    Unknown keys are ignored. Nested values inside ``data`` are kept as the
    JSON decoder produced them so the formatter can render their structure.
    """

    text = decode_raw(raw)
    try:
        return _decode_record(text)
    except (ValueError, TypeError, OverflowError, OSError, RecursionError) as exc:
        # JSONDecodeError is a ValueError; OSError/OverflowError come from
        # out-of-range epoch timestamps; RecursionError from deeply nested JSON.
        LOGGER.warning("Failed to parse message as JSON, using raw text: %s", exc)
        return NotificationRecord.from_raw(text, now())
