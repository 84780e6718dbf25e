"""New-task form screen."""

from __future__ import annotations

from datetime import date, timedelta

from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Select, Static, TextArea

from tui_gantt.errors import ValidationError
from tui_gantt.models import TaskKind, parse_datetime, parse_percent
from tui_gantt.scheduler import parse_predecessor_refs


class TaskFormScreen(ModalScreen[dict | None]):
    """Modal form for creating a task, phase or milestone.

    Dismisses with a dict of ``Scheduler.create_task`` keyword arguments
    (predecessor references still unresolved) or None on cancel.
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    TaskFormScreen {
        align: center middle;
    }
    #task-form-container {
        width: 70;
        max-height: 85%;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #task-form-title {
        text-style: bold;
        margin-bottom: 1;
    }
    .field-label {
        margin-top: 1;
        color: $text-muted;
    }
    #task-form-description {
        height: 4;
    }
    #task-form-buttons {
        align: center middle;
        height: 3;
        margin-top: 1;
    }
    #task-form-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(
        self,
        parent_label: str = "",
        kind: TaskKind = TaskKind.TASK,
        start: date | None = None,
    ) -> None:
        super().__init__()
        self._parent_label = parent_label
        self._kind = kind
        self._start = start or date.today()

    def compose(self) -> ComposeResult:
        title = f"New {self._kind.value}"
        if self._parent_label:
            title += f" under {self._parent_label}"
        default_end = self._start if self._kind == TaskKind.MILESTONE else self._start + timedelta(days=7)

        with VerticalScroll(id="task-form-container"):
            yield Static(f"[bold]{title}[/bold]", id="task-form-title")

            yield Static("Name", classes="field-label")
            yield Input(id="field-name")

            yield Static("Kind", classes="field-label")
            yield Select(
                [(k.value, k.value) for k in TaskKind],
                value=self._kind.value,
                allow_blank=False,
                id="field-kind",
            )

            yield Static("Planned start", classes="field-label")
            yield Input(value=self._start.isoformat(), placeholder="YYYY-MM-DD", id="field-start")

            yield Static("Planned end", classes="field-label")
            yield Input(value=default_end.isoformat(), placeholder="YYYY-MM-DD", id="field-end")

            yield Static("Percent complete", classes="field-label")
            yield Input(value="0", placeholder="0-100", id="field-percent")

            yield Static("Predecessors", classes="field-label")
            yield Input(placeholder="1.2; 1.3:SS:2", id="field-predecessors")

            yield Static("Description", classes="field-label")
            yield TextArea("", id="task-form-description")

            with Horizontal(id="task-form-buttons"):
                yield Button("Create", variant="primary", id="save-btn")
                yield Button("Cancel", variant="default", id="cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#field-name", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-btn":
            self._submit()
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit()

    def _submit(self) -> None:
        result = self._collect()
        if result is not None:
            self.dismiss(result)

    def _collect(self) -> dict | None:
        """Collect form values. Returns None (and notifies) on invalid input."""
        name = self.query_one("#field-name", Input).value.strip()
        if not name:
            self.notify("Name cannot be empty", severity="error")
            return None
        kind = TaskKind(str(self.query_one("#field-kind", Select).value))
        try:
            start = parse_datetime(self.query_one("#field-start", Input).value, "planned_start")
            end = parse_datetime(self.query_one("#field-end", Input).value, "planned_end")
            percent = parse_percent(self.query_one("#field-percent", Input).value or 0)
            predecessors = parse_predecessor_refs(self.query_one("#field-predecessors", Input).value)
        except ValidationError as exc:
            self.notify(str(exc), severity="error")
            return None
        if start is None:
            self.notify("Planned start is required", severity="error")
            return None
        if kind == TaskKind.MILESTONE:
            end = start
        elif end is None or end < start:
            self.notify("Planned end must not be before planned start", severity="error")
            return None

        return {
            "name": name,
            "kind": kind,
            "planned_start": start,
            "planned_end": end,
            "percent_complete": percent,
            "description": self.query_one("#task-form-description", TextArea).text.strip(),
            "predecessors": predecessors,
        }

    def action_cancel(self) -> None:
        self.dismiss(None)
