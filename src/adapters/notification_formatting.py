"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of which topic produced them. Output targets Telegram's
HTML parse mode, so every piece of producer-controlled text is escaped.
"""

from __future__ import annotations

import html
from typing import Any, Mapping

from core.models import EventDefinition, NotificationRecord

SEVERITY_GLYPHS = {
    "critical": "🔴",
    "error": "🔴",
    "warning": "🟡",
    "warn": "🟡",
    "info": "🔵",
    "information": "🔵",
    "success": "🟢",
}
DEFAULT_SEVERITY_GLYPH = "ℹ️"

INDENT = "  "


def escape(value: Any) -> str:
    """Escape ``&``, ``<``, ``>`` and quotes for Telegram HTML."""

    return html.escape(scalar_text(value), quote=True)


def scalar_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def severity_glyph(severity: str | None) -> str:
    if not severity:
        return DEFAULT_SEVERITY_GLYPH
    return SEVERITY_GLYPHS.get(severity.strip().lower(), DEFAULT_SEVERITY_GLYPH)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _render_mapping(lines: list[str], data: Mapping[str, Any], depth: int) -> None:
    prefix = INDENT * depth
    for key, value in data.items():
        label = f"{prefix}<b>{escape(key)}:</b>"
        if isinstance(value, Mapping):
            lines.append(label)
            _render_mapping(lines, value, depth + 1)
        elif _is_sequence(value):
            lines.append(label)
            _render_sequence(lines, value, depth + 1)
        else:
            lines.append(f"{label} {escape(value)}")


def _render_sequence(lines: list[str], items: Any, depth: int) -> None:
    prefix = INDENT * depth
    for item in items:
        if isinstance(item, Mapping):
            lines.append(f"{prefix}•")
            _render_mapping(lines, item, depth + 1)
        elif _is_sequence(item):
            lines.append(f"{prefix}•")
            _render_sequence(lines, item, depth + 1)
        else:
            lines.append(f"{prefix}• {escape(item)}")


def format_data(data: Mapping[str, Any], depth: int = 1) -> list[str]:
    """Render nested key/value data, one pair per line.

    Nested mappings are indented one level deeper and sequences become
    bulleted items.
    """

    lines: list[str] = []
    _render_mapping(lines, data, depth)
    return lines


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def format_notification(record: NotificationRecord, event: EventDefinition) -> str:
    """Return the Telegram HTML notification for ``record``."""

    lines = [
        "🔔 <b>Event Notification</b>",
        "",
        f"📊 <b>System:</b> {escape(event.system_name)}",
        f"📋 <b>Event:</b> {escape(event.event_name)}",
    ]
    if record.timestamp is not None:
        timestamp = record.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"⏰ <b>Time:</b> {escape(timestamp)}")
    lines.append("")

    if _has_text(record.title):
        lines.append(f"📌 <b>Title:</b> {escape(record.title)}")
    if _has_text(record.description):
        lines.append(f"📝 <b>Description:</b> {escape(record.description)}")
    if _has_text(record.free_text_message):
        lines.append(f"💬 <b>Message:</b> {escape(record.free_text_message)}")
    if _has_text(record.severity):
        glyph = severity_glyph(record.severity)
        lines.append(f"⚠️ <b>Severity:</b> {glyph} {escape(record.severity)}")

    if record.extra_data:
        lines.extend(["", "📊 <b>Additional Data:</b>"])
        lines.extend(format_data(record.extra_data))

    return "\n".join(lines).rstrip("\n")
