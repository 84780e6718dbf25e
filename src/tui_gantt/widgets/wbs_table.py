"""WBS table widget based on DataTable."""

from __future__ import annotations

from datetime import datetime

from textual.app import ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import DataTable

from rich.text import Text

from tui_gantt.models import DEFAULT_DATE_FORMAT, format_date
from tui_gantt.scheduler import ScheduleView
from tui_gantt.wbs import Row
from tui_gantt import theme


class SyncedDataTable(DataTable):
    """DataTable subclass that emits scroll changes for synchronization."""

    class ScrollChanged(Message):
        """Emitted when vertical scroll position changes."""

        def __init__(self, scroll_y: float) -> None:
            super().__init__()
            self.scroll_y = scroll_y

    def watch_scroll_y(self, old_value: float, new_value: float) -> None:
        super().watch_scroll_y(old_value, new_value)
        self.post_message(self.ScrollChanged(new_value))


_PROGRESS_BAR_WIDTH = 8


def make_progress_cell(progress: int, bar_width: int = _PROGRESS_BAR_WIDTH, dark: bool = True) -> Text:
    progress = max(0, min(100, progress))
    filled = max(1, round(bar_width * progress / 100)) if progress > 0 else 0
    color = theme.progress_color(progress).resolve(dark)

    text = Text()
    text.append(f"{progress:>3}% ", style="bold")
    text.append("█" * filled, style=color)
    text.append("░" * (bar_width - filled), style="dim")
    return text


COLUMNS: list[tuple[str, str, int]] = [
    ("wbs", "WBS", 8),
    ("name", "Name", 32),
    ("start", "Start", 10),
    ("end", "End", 10),
    ("days", "Days", 5),
    ("progress", "Progress", 14),
    ("predecessors", "Pred.", 10),
]


class WBSTable(Container):
    """Flattened WBS rows with fold markers, rolled-up progress and predecessors."""

    DEFAULT_CSS = """
    WBSTable {
        width: auto;
        height: 1fr;
    }
    WBSTable SyncedDataTable {
        width: auto;
        height: 1fr;
        margin-top: 2;
    }
    """

    class CursorRowChanged(Message):
        """Emitted when the cursor row changes (for Gantt highlight sync)."""

        def __init__(self, row_index: int, task_id: str) -> None:
            super().__init__()
            self.row_index = row_index
            self.task_id = task_id

    class RowsChanged(Message):
        """Emitted after the table was rebuilt from a new schedule view."""

        def __init__(self, rows: list[Row]) -> None:
            super().__init__()
            self.rows = rows

    def __init__(self, date_format: str = DEFAULT_DATE_FORMAT) -> None:
        super().__init__()
        self._date_format = date_format
        self._view: ScheduleView | None = None
        self._rows: list[Row] = []

    def compose(self) -> ComposeResult:
        yield SyncedDataTable(id="wbs-data-table", cursor_type="row", zebra_stripes=True)

    @property
    def data_table(self) -> SyncedDataTable:
        return self.query_one("#wbs-data-table", SyncedDataTable)

    def update_view(self, view: ScheduleView, date_format: str | None = None) -> None:
        saved_task_id = self.highlighted_task_id
        self._view = view
        self._rows = list(view.rows)
        if date_format is not None:
            self._date_format = date_format
        self._rebuild_table(saved_task_id)

    def _rebuild_table(self, saved_task_id: str | None = None) -> None:
        table = self.data_table

        table.clear(columns=True)
        for key, label, width in COLUMNS:
            table.add_column(label, key=key, width=width)

        for row in self._rows:
            table.add_row(*self._make_row(row), key=row.task.id)

        if saved_task_id:
            self.move_to(saved_task_id)
        self.post_message(self.RowsChanged(list(self._rows)))

    def _make_row(self, row: Row) -> list:
        task = row.task
        view = self._view
        progress = view.progress.get(task.id, 0) if view else task.percent_complete
        dark = theme.is_dark(self)

        if row.has_children:
            fold_icon = "▼ " if row.expanded else "▶ "
        else:
            fold_icon = "  "
        name = Text(f"{'  ' * row.level}{fold_icon}")
        name.append(f"{task.icon} ", style=theme.KIND_COLORS[task.kind].resolve(dark))
        name_start = len(name)
        name.append(task.name)
        # Unfinished work past its planned end
        if task.planned_end is not None and progress < 100 and task.planned_end < datetime.now():
            name.stylize(theme.OVERDUE_TITLE.resolve(dark), name_start, len(name))

        return [
            task.wbs_code,
            name,
            format_date(task.planned_start, self._date_format),
            format_date(task.planned_end, self._date_format),
            str(task.duration_days) if task.has_dates else "",
            make_progress_cell(progress, dark=dark),
            ", ".join(view.predecessor_labels(task.id)) if view else "",
        ]

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        row_key = event.row_key
        if row_key is not None and row_key.value:
            self.post_message(self.CursorRowChanged(event.cursor_row, str(row_key.value)))

    def move_to(self, task_id: str) -> bool:
        for index, row in enumerate(self._rows):
            if row.task.id == task_id:
                self.data_table.move_cursor(row=index, animate=False)
                return True
        return False

    @property
    def highlighted_task_id(self) -> str | None:
        try:
            table = self.data_table
        except NoMatches:
            return None
        if table.cursor_row is not None and 0 <= table.cursor_row < len(self._rows):
            return self._rows[table.cursor_row].task.id
        return None
