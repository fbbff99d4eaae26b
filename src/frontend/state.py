"""State helpers for the listener control panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from core.models import EventDefinition


@dataclass(frozen=True)
class ListenerRow:
    topic: str
    system_name: str
    event_name: str
    listening: bool

    @property
    def status_label(self) -> str:
        return "listening" if self.listening else "stopped"


def build_rows(
    events: Iterable[EventDefinition],
    is_listening: Callable[[str], bool],
) -> list[ListenerRow]:
    """One row per event with a topic, ordered by topic."""

    rows = [
        ListenerRow(
            topic=event.topic,
            system_name=event.system_name,
            event_name=event.event_name,
            listening=is_listening(event.topic),
        )
        for event in events
        if event.topic and event.topic.strip()
    ]
    return sorted(rows, key=lambda row: row.topic)
