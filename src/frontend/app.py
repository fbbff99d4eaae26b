"""Textual control panel for starting and stopping topic listeners."""

from __future__ import annotations

from typing import Any, Callable, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Static

from core.listener_manager import ListenerManager
from core.ports import EventStorePort

from .constants import TELEGRAM_BLUE
from .state import build_rows


class ListenerPanelApp(App):
    """Lists known event topics and controls their listeners in-process."""

    BINDINGS = [
        ("s", "start_selected", "Start"),
        ("x", "stop_selected", "Stop"),
        ("a", "start_all", "Start all"),
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 5;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: #c6d2dd;
    }

    #listeners-table {
        height: 1fr;
        margin: 1 4;
    }

    #actions {
        height: 3;
        padding: 0 4;
    }

    #actions Button {
        margin-right: 2;
    }
    """

    def __init__(self, store: EventStorePort, manager: ListenerManager, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._store = store
        self._manager = manager
        self._selected_topic: Optional[str] = None

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Vertical():
                yield Static(self._title_text(), id="title")
                yield Static("", id="header-status", classes="subtle")
        yield DataTable(id="listeners-table", cursor_type="row")
        with Horizontal(id="actions"):
            yield Button("Start", id="start-btn", variant="success")
            yield Button("Stop", id="stop-btn", variant="error")
            yield Button("Start all", id="start-all-btn")
            yield Button("Refresh", id="refresh-btn")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#listeners-table", DataTable)
        table.add_column("status", key="status", width=10)
        table.add_column("topic", key="topic", width=32)
        table.add_column("system", key="system", width=20)
        table.add_column("event", key="event", width=24)
        table.zebra_stripes = True
        self._refresh_table()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self._selected_topic = event.row_key.value if event.row_key is not None else None

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start-btn":
            self.action_start_selected()
        elif event.button.id == "stop-btn":
            self.action_stop_selected()
        elif event.button.id == "start-all-btn":
            self.action_start_all()
        elif event.button.id == "refresh-btn":
            self.action_refresh()

    def action_start_selected(self) -> None:
        topic = self._selected_topic
        if topic:
            self._in_background(lambda: self._report(topic, self._manager.start_listening(topic), "started"))

    def action_stop_selected(self) -> None:
        topic = self._selected_topic
        if topic:
            self._in_background(lambda: self._report(topic, self._manager.stop_listening(topic), "stopped"))

    def action_start_all(self) -> None:
        def start_all() -> None:
            rows = build_rows(self._store.list_events(), self._manager.is_listening)
            started = sum(1 for row in rows if not row.listening and self._manager.start_listening(row.topic))
            self.call_from_thread(self._set_status, f"started {started} listeners")

        self._in_background(start_all)

    def action_refresh(self) -> None:
        self._refresh_table()

    def _in_background(self, work: Callable[[], None]) -> None:
        # Starting a consumer connects to the broker, so keep it off the UI thread.
        def run() -> None:
            work()
            self.call_from_thread(self._refresh_table)

        self.run_worker(run, thread=True)

    def _report(self, topic: str, ok: bool, verb: str) -> None:
        message = f"{topic}: {verb}" if ok else f"{topic}: nothing to do"
        self.call_from_thread(self._set_status, message)

    def _set_status(self, message: str) -> None:
        self.query_one("#header-status", Static).update(message)

    def _refresh_table(self) -> None:
        table = self.query_one("#listeners-table", DataTable)
        table.clear()
        for row in build_rows(self._store.list_events(), self._manager.is_listening):
            table.add_row(row.status_label, row.topic, row.system_name, row.event_name, key=row.topic)
        active = len(self._manager.active_topics())
        self.query_one("#title", Static).update(self._title_text(active))

    @staticmethod
    def _title_text(active: int = 0) -> Text:
        return Text.assemble(
            ("EVENT", TELEGRAM_BLUE),
            ("BELL > Listeners", "bold"),
            (f"  ({active} active)", "dim"),
        )
