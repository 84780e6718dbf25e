"""Main Textual App for TUI Gantt."""

from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Static

from tui_gantt.config import (
    LayoutSettings,
    get_schedule_path,
    load_config,
    load_settings,
    save_config,
)
from tui_gantt.dependencies import DependencyGraph
from tui_gantt.errors import SchedulingError, ValidationError
from tui_gantt.filelock import acquire_lock, release_lock
from tui_gantt.models import ProjectConfig, TaskKind, ZoomMode, parse_percent
from tui_gantt.scheduler import Scheduler, ScheduleView, parse_predecessor_refs
from tui_gantt.screens.confirm_screen import ConfirmScreen
from tui_gantt.screens.edit_screen import EditScreen
from tui_gantt.screens.task_form_screen import TaskFormScreen
from tui_gantt.screens.warning_screen import WarningScreen
from tui_gantt.store import TaskStore, YamlFileStore
from tui_gantt.timeline import DragMode, drag_update
from tui_gantt.wbs import all_parent_ids, ancestors_of
from tui_gantt.widgets.gantt_chart import GanttChart, GanttToolbar, GanttView
from tui_gantt.widgets.wbs_table import SyncedDataTable, WBSTable
from tui_gantt.commands import GanttCommandProvider
from tui_gantt import theme

logger = logging.getLogger(__name__)


class GanttApp(App):
    """TUI Gantt Application."""

    TITLE = "TUI Gantt"
    CSS = """
    #main-content {
        height: 1fr;
        border: round $surface-lighten-2;
        border-title-align: left;
    }
    #main-content:focus-within {
        border: round $accent;
        border-title-color: $accent;
    }
    #status-bar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $primary-background;
        color: $text;
    }
    """

    COMMANDS = App.COMMANDS | {GanttCommandProvider}

    BINDINGS = [
        Binding("exclamation_mark", "warnings", "Warnings"),
        Binding("q", "quit_app", "Quit"),
        Binding("space", "toggle_collapse", "Fold/Unfold", show=False),
        # Task CRUD
        Binding("a", "add_child", "Add child"),
        Binding("A", "add_root", "Add root", show=False),
        Binding("m", "add_milestone", "Milestone", show=False),
        Binding("e", "rename", "Rename"),
        Binding("p", "set_percent", "Progress", show=False),
        Binding("l", "link", "Link"),
        Binding("d", "delete_task", "Delete"),
        # Dates
        Binding("shift+left", "move_earlier", show=False),
        Binding("shift+right", "move_later", show=False),
        Binding("minus", "shorten", "Duration -1", show=False),
        Binding("plus", "lengthen", "Duration +1", show=False),
        # Gantt zoom
        Binding("D", "zoom_day", show=False),
        Binding("W", "zoom_week", show=False),
        Binding("M", "zoom_month", show=False),
        Binding("Q", "zoom_quarter", show=False),
        Binding("less_than_sign", "collapse_all", show=False),
        Binding("greater_than_sign", "expand_all", show=False),
        Binding("t", "gantt_today", show=False),
        Binding("c", "toggle_dependencies", "Links on/off", show=False),
    ]

    def __init__(
        self,
        project_dir: Path | None = None,
        store: TaskStore | None = None,
        no_color: bool = False,
        demo_mode: bool = False,
        today: date | None = None,
    ) -> None:
        if no_color:
            os.environ["NO_COLOR"] = "1"
        super().__init__()
        if project_dir is None and store is None:
            raise ValueError("either project_dir or store is required")
        self.project_dir = project_dir
        self.no_color = no_color
        self.demo_mode = demo_mode
        self.config: ProjectConfig = ProjectConfig()
        self.settings: LayoutSettings = LayoutSettings()
        self.scheduler: Scheduler | None = None
        self.schedule: ScheduleView | None = None
        self._store = store
        self._today = today
        self._expanded: set[str] = set()
        self._locked: bool = False
        self._scroll_syncing: bool = False

    def on_mount(self) -> None:
        self.set_timer(0.01, self._load_project)

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-content"):
            yield WBSTable(date_format=self.config.date_format)
            yield GanttChart()
        yield Static("", id="status-bar")
        yield Footer()

    # ── Loading ──

    def _load_project(self) -> None:
        if self.project_dir is not None:
            theme.load_theme(self.project_dir)
            if not self.demo_mode:
                self._locked = acquire_lock(self.project_dir)
                if not self._locked:
                    self.notify("Project locked by another process", severity="error")
            self.config = load_config(self.project_dir)
            self.settings = LayoutSettings.from_settings(load_settings(self.project_dir))

        store = self._store or YamlFileStore(get_schedule_path(self.project_dir))
        self.scheduler = Scheduler(store, settings=self.settings, weighting=self.config.view.weighting)

        if isinstance(store, YamlFileStore) and not store.path.exists():
            self.push_screen(
                ConfirmScreen("No schedule found. Create a sample construction schedule?"),
                callback=self._on_sample_confirmed,
            )
            return
        self._finish_load()

    def _on_sample_confirmed(self, confirmed: bool) -> None:
        store = self.scheduler.store
        try:
            if isinstance(store, YamlFileStore):
                store.initialize()
            if confirmed:
                from tui_gantt.demo_data import seed_demo_schedule

                seed_demo_schedule(self.scheduler, self._today)
            if self.project_dir is not None:
                save_config(self.project_dir, self.config)
        except SchedulingError as exc:
            logger.error("could not create schedule: %s", exc)
            self.notify(str(exc), severity="error")
        self._finish_load()

    def _finish_load(self) -> None:
        if self.config.view.expanded is None:
            self._expanded = all_parent_ids(self._list_tasks())
        else:
            self._expanded = set(self.config.view.expanded)
        if not self.config.name:
            if self.demo_mode:
                from tui_gantt.demo_data import DEMO_PROJECT_NAME

                self.config.name = DEMO_PROJECT_NAME
            elif self.project_dir is not None:
                self.config.name = self.project_dir.name
        self._update_title()
        self._refresh_ui()
        try:
            self.query_one(WBSTable).data_table.focus()
        except Exception:
            pass

    def _list_tasks(self) -> list:
        try:
            return self.scheduler.store.list_tasks()
        except SchedulingError as exc:
            self.notify(str(exc), severity="error")
            return []

    # ── Refresh ──

    def _refresh_ui(self) -> None:
        if self.scheduler is None:
            return
        try:
            self.schedule = self.scheduler.refresh(self._expanded, self.config.view.zoom_mode, today=self._today)
        except SchedulingError as exc:
            logger.error("refresh failed: %s", exc)
            self.notify(str(exc), severity="error")
            return

        table = self.query_one(WBSTable)
        table.update_view(self.schedule, date_format=self.config.date_format)
        gantt = self.query_one(GanttChart)
        gantt.update_view(self.schedule, self.settings, self.config.view.show_dependencies)
        gantt.set_highlight(table.data_table.cursor_row)

        content = self.query_one("#main-content", Horizontal)
        content.border_title = "WBS + Gantt"
        content.border_subtitle = f"{len(self.schedule.tasks_by_id)} tasks"
        self._update_status_bar()

    def _warning_sections(self) -> dict[str, list[str]]:
        sections: dict[str, list[str]] = {}
        if self.schedule is not None:
            sections["Stale references"] = [str(w) for w in self.schedule.warnings]
            sections["Constraint violations"] = [str(v) for v in self.schedule.violations]
        store = self.scheduler.store if self.scheduler else None
        sections["Skipped records"] = list(getattr(store, "skipped", []))
        return sections

    def _update_status_bar(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except Exception:
            return
        parts: list[str] = []
        if self.demo_mode:
            color = theme.STATUSBAR_DEMO.resolve(theme.is_dark(self))
            parts.append(f"[bold {color}]DEMO[/bold {color}]")
        warning_count = sum(len(items) for items in self._warning_sections().values())
        if warning_count > 0:
            color = theme.STATUSBAR_WARNING.resolve(theme.is_dark(self))
            parts.append(f"[{color}]⚠ {warning_count} warning(s)[/{color}]")
        parts.append(f"Zoom: {self.config.view.zoom_mode.value}")
        if not self.config.view.show_dependencies:
            parts.append("Links hidden")
        bar.update(" | ".join(parts))

    def _update_title(self) -> None:
        demo = " [DEMO]" if self.demo_mode else ""
        self.title = f"TUI Gantt - {self.config.name}{demo}"

    def _save_view_state(self) -> None:
        self.config.view.expanded = set(self._expanded)
        if self.demo_mode or self.project_dir is None:
            return
        save_config(self.project_dir, self.config)

    # ── Table / Gantt synchronisation ──

    def on_gantt_toolbar_zoom_changed(self, event: GanttToolbar.ZoomChanged) -> None:
        self._set_zoom(event.zoom_mode)

    def on_wbstable_cursor_row_changed(self, event: WBSTable.CursorRowChanged) -> None:
        """Sync table cursor highlight to Gantt chart."""
        try:
            gantt = self.query_one(GanttChart)
            gantt.set_highlight(event.row_index)
            gantt.gantt_view.scroll_y = self.query_one(WBSTable).data_table.scroll_y
        except Exception:
            pass

    def _reset_scroll_syncing(self) -> None:
        self._scroll_syncing = False

    def on_synced_data_table_scroll_changed(self, event: SyncedDataTable.ScrollChanged) -> None:
        """Synchronize table vertical scroll to Gantt view."""
        if self._scroll_syncing:
            return
        try:
            self._scroll_syncing = True
            self.query_one(GanttChart).gantt_view.scroll_y = event.scroll_y
        except Exception:
            pass
        # Delay flag reset so bounce-back messages are caught
        self.set_timer(0.05, self._reset_scroll_syncing)

    def on_gantt_view_scroll_y_changed(self, event: GanttView.ScrollYChanged) -> None:
        """Synchronize Gantt view vertical scroll to table."""
        if self._scroll_syncing:
            return
        try:
            self._scroll_syncing = True
            self.query_one(WBSTable).data_table.scroll_y = event.scroll_y
        except Exception:
            pass
        self.set_timer(0.05, self._reset_scroll_syncing)

    # ── Helpers ──

    def _highlighted_task_id(self) -> str | None:
        try:
            return self.query_one(WBSTable).highlighted_task_id
        except Exception:
            return None

    def _run(self, operation, *args, **kwargs):
        """Run a scheduler operation, reporting rejections as notifications."""
        if self.scheduler is None:
            return None
        try:
            result = operation(*args, **kwargs)
        except SchedulingError as exc:
            self.notify(str(exc), severity="error")
            return None
        self._refresh_ui()
        return result

    # ── Actions ──

    def action_warnings(self) -> None:
        self.push_screen(WarningScreen(self._warning_sections()))

    def action_quit_app(self) -> None:
        if self._locked and self.project_dir is not None:
            release_lock(self.project_dir)
            self._locked = False
        self.exit()

    def action_toggle_collapse(self) -> None:
        task_id = self._highlighted_task_id()
        if not task_id or self.schedule is None:
            return
        row = self.schedule.row_for(task_id)
        if row is None or not row.has_children:
            return
        if task_id in self._expanded:
            self._expanded.discard(task_id)
        else:
            self._expanded.add(task_id)
        self._save_view_state()
        self._refresh_ui()

    def action_collapse_all(self) -> None:
        self._expanded = set()
        self._save_view_state()
        self._refresh_ui()

    def action_expand_all(self) -> None:
        self._expanded = all_parent_ids(self._list_tasks())
        self._save_view_state()
        self._refresh_ui()

    def _set_zoom(self, zoom_mode: ZoomMode) -> None:
        if zoom_mode == self.config.view.zoom_mode:
            return
        self.config.view.zoom_mode = zoom_mode
        self._save_view_state()
        self._refresh_ui()

    def action_zoom_day(self) -> None:
        self._set_zoom(ZoomMode.DAY)

    def action_zoom_week(self) -> None:
        self._set_zoom(ZoomMode.WEEK)

    def action_zoom_month(self) -> None:
        self._set_zoom(ZoomMode.MONTH)

    def action_zoom_quarter(self) -> None:
        self._set_zoom(ZoomMode.QUARTER)

    def action_gantt_today(self) -> None:
        try:
            self.query_one(GanttChart).go_to_today()
        except Exception:
            pass

    def action_toggle_dependencies(self) -> None:
        self.config.view.show_dependencies = not self.config.view.show_dependencies
        self._save_view_state()
        self._refresh_ui()

    # Task creation

    def _open_task_form(self, parent_id: str | None, kind: TaskKind) -> None:
        parent_label = ""
        if parent_id and self.schedule is not None:
            parent = self.schedule.tasks_by_id.get(parent_id)
            if parent is not None:
                parent_label = f"{parent.wbs_code} {parent.name}"
        start = self._today or date.today()
        self.push_screen(
            TaskFormScreen(parent_label=parent_label, kind=kind, start=start),
            callback=lambda result: self._on_task_form(parent_id, result),
        )

    def _on_task_form(self, parent_id: str | None, result: dict | None) -> None:
        if not result or self.scheduler is None:
            return
        try:
            predecessors = [
                (self.scheduler.resolve_ref(ref), dep_type, lag)
                for ref, dep_type, lag in result.pop("predecessors", [])
            ]
        except SchedulingError as exc:
            self.notify(str(exc), severity="error")
            return
        task = self._run(self.scheduler.create_task, parent_id=parent_id, predecessors=predecessors, **result)
        if task is None:
            return
        if parent_id:
            self._expanded.add(parent_id)
            self._expanded.update(ancestors_of(parent_id, self._list_tasks()))
            self._save_view_state()
            self._refresh_ui()
        self.query_one(WBSTable).move_to(task.id)
        self.notify(f"Created {task.wbs_code} {task.name}")

    def action_add_child(self) -> None:
        self._open_task_form(self._highlighted_task_id(), TaskKind.TASK)

    def action_add_root(self) -> None:
        self._open_task_form(None, TaskKind.PHASE)

    def action_add_milestone(self) -> None:
        task_id = self._highlighted_task_id()
        parent_id = None
        if task_id and self.schedule is not None:
            task = self.schedule.tasks_by_id.get(task_id)
            if task is not None:
                parent_id = task.id if task.is_phase else task.parent_id
        self._open_task_form(parent_id, TaskKind.MILESTONE)

    # Task edits

    def action_rename(self) -> None:
        task_id = self._highlighted_task_id()
        if not task_id or self.schedule is None:
            return
        task = self.schedule.tasks_by_id[task_id]
        self.push_screen(
            EditScreen("Name", initial_value=task.name),
            callback=lambda value: self._on_renamed(task_id, value),
        )

    def _on_renamed(self, task_id: str, value: str | None) -> None:
        if value is not None:
            self._run(self.scheduler.update_task, task_id, name=value)

    def action_set_percent(self) -> None:
        task_id = self._highlighted_task_id()
        if not task_id or self.schedule is None:
            return
        task = self.schedule.tasks_by_id[task_id]
        if task.is_phase:
            self.notify("Phase progress is rolled up from its children", severity="warning")
            return
        self.push_screen(
            EditScreen(
                "Percent complete",
                initial_value=str(task.percent_complete),
                placeholder="0-100",
                validate=parse_percent,
            ),
            callback=lambda value: self._on_percent(task_id, value),
        )

    def _on_percent(self, task_id: str, value: str | None) -> None:
        if value is not None:
            self._run(self.scheduler.update_task, task_id, percent_complete=value)

    def action_link(self) -> None:
        task_id = self._highlighted_task_id()
        if not task_id:
            return
        self.push_screen(
            EditScreen(
                "Predecessor (WBS code or id, optionally :TYPE:LAG)",
                placeholder="1.2:FS:0",
                validate=_validate_single_ref,
            ),
            callback=lambda value: self._on_link(task_id, value),
        )

    def _on_link(self, successor_id: str, value: str | None) -> None:
        if not value or self.scheduler is None:
            return
        ref, dep_type, lag = parse_predecessor_refs(value)[0]
        try:
            predecessor_id = self.scheduler.resolve_ref(ref)
        except SchedulingError as exc:
            self.notify(str(exc), severity="error")
            return
        dep = self._run(self.scheduler.create_dependency, predecessor_id, successor_id, dep_type, lag)
        if dep is not None:
            self.notify(f"Linked {ref} ({dep.label()})")

    def action_delete_task(self) -> None:
        task_id = self._highlighted_task_id()
        if not task_id or self.schedule is None:
            return
        task = self.schedule.tasks_by_id[task_id]
        msg = f"Delete '{task.wbs_code} {task.name}' and its dependencies?"
        row = self.schedule.row_for(task_id)
        if row is not None and row.has_children:
            msg += " Its children become top-level tasks."
        links = DependencyGraph(self.schedule.dependencies).referencing(task_id)
        if links:
            msg += f" {len(links)} dependency link(s) will be removed."
        self.push_screen(
            ConfirmScreen(msg, title="Delete task", confirm_label="Delete"),
            callback=lambda confirmed: self._on_delete_confirmed(task_id, confirmed),
        )

    def _on_delete_confirmed(self, task_id: str, confirmed: bool) -> None:
        if confirmed:
            self._expanded.discard(task_id)
            self._run(self.scheduler.delete_task, task_id)

    # Date shifts (keyboard equivalent of dragging a bar)

    def _shift(self, mode: DragMode, direction: int) -> None:
        task_id = self._highlighted_task_id()
        if not task_id or self.schedule is None:
            return
        task = self.schedule.tasks_by_id[task_id]
        ppd = self.schedule.layout.pixels_per_day
        fields = drag_update(task, mode, direction * ppd, ppd)
        if not fields:
            return
        self._run(self.scheduler.update_task, task_id, **fields)

    def action_move_earlier(self) -> None:
        self._shift(DragMode.MOVE, -1)

    def action_move_later(self) -> None:
        self._shift(DragMode.MOVE, 1)

    def action_shorten(self) -> None:
        self._shift(DragMode.RESIZE_END, -1)

    def action_lengthen(self) -> None:
        self._shift(DragMode.RESIZE_END, 1)


def _validate_single_ref(value: str) -> None:
    refs = parse_predecessor_refs(value)
    if len(refs) != 1:
        raise ValidationError("predecessor", "enter exactly one predecessor")
