"""Tests for the Gantt chart cell grid helpers and rendering."""

from datetime import date, datetime

import pytest
from rich.color import Color

from tui_gantt import theme
from tui_gantt.models import Dependency, Task, ZoomMode
from tui_gantt.routing import ConnectorPath
from tui_gantt.timeline import compute_layout
from tui_gantt.widgets.gantt_chart import (
    CellScale,
    GanttHeader,
    GanttToolbar,
    GanttView,
    _fg,
    connector_cells,
)

@pytest.fixture
def layout():
    tasks = [
        Task(name="A", id="A", planned_start=datetime(2024, 1, 1), planned_end=datetime(2024, 1, 10)),
        Task(name="B", id="B", planned_start=datetime(2024, 1, 5), planned_end=datetime(2024, 1, 15)),
    ]
    return compute_layout(tasks, ZoomMode.DAY, today=date(2024, 1, 8))

def _path(points, pred_row, succ_row):
    return ConnectorPath(
        dependency=Dependency("A", "B"),
        predecessor_row=pred_row,
        successor_row=succ_row,
        points=points,
        arrowhead=(points[-1], points[-1], points[-1]),
    )

class TestCellScale:
    def test_col_and_row(self, layout):
        scale = CellScale(layout, 15, 36)
        assert scale.col(0) == 0
        assert scale.col(29) == 1
        assert scale.col(30) == 2
        assert scale.row(18) == 0
        assert scale.row(54) == 1

    def test_width_rounds_up(self, layout):
        scale = CellScale(layout, 15, 36)
        assert scale.width == -(-layout.total_width // 15)

    def test_col_date(self, layout):
        scale = CellScale(layout, 15, 36)
        assert scale.col_date(0) == date(2023, 12, 25)
        assert scale.col_date(2) == date(2023, 12, 26)

    def test_shows_days(self, layout):
        assert CellScale(layout, 15, 36).shows_days
        assert not CellScale(layout, 60, 36).shows_days

    def test_zero_cell_px_clamped(self, layout):
        assert CellScale(layout, 0, 0).cell_px == 1

class TestConnectorCells:
    def test_forward_path_down(self, layout):
        scale = CellScale(layout, 10, 36)
        path = _path(((100, 18), (112, 18), (112, 90), (200, 90)), 0, 2)
        cells = connector_cells([path], scale)
        assert cells[(0, 10)] == "─"
        assert cells[(0, 11)] == "┐"
        assert cells[(1, 11)] == "│"
        assert cells[(2, 11)] == "└"
        assert all(cells[(2, c)] == "─" for c in range(12, 20))
        assert cells[(2, 20)] == "▶"

    def test_path_up(self, layout):
        scale = CellScale(layout, 10, 36)
        path = _path(((100, 90), (112, 90), (112, 18), (150, 18)), 2, 0)
        cells = connector_cells([path], scale)
        assert cells[(2, 11)] == "┘"
        assert cells[(0, 11)] == "┌"
        assert cells[(0, 15)] == "▶"

    def test_no_paths(self, layout):
        assert connector_cells([], CellScale(layout, 10, 36)) == {}

class TestThemeStyles:
    def test_attributes_in_entry(self):
        style = _fg(theme.ColorPair("bold #ff5f5f", "#d70000"), dark=True)
        assert style.bold
        assert style.color == Color.parse("#ff5f5f")

    def test_light_entry_with_bold_flag(self):
        style = _fg(theme.ColorPair("bold #ff5f5f", "#d70000"), dark=False, bold=True)
        assert style.bold
        assert style.color == Color.parse("#d70000")

    @pytest.mark.parametrize("dark", [True, False])
    def test_every_foreground_entry_parses(self, dark):
        theme.load_theme()
        pairs = [
            theme.GANTT_HEADER, theme.GANTT_TODAY_MARKER, theme.GANTT_DEPENDENCY_ARROW,
            theme.GANTT_MILESTONE, theme.GANTT_BAR_PHASE, theme.GANTT_BAR_DONE,
            theme.GANTT_BAR_IN_PROGRESS, theme.GANTT_BAR_TODO,
        ]
        for pair in pairs:
            assert _fg(pair, dark).color is not None

PAUSE = 0.1




@pytest.mark.asyncio
@pytest.mark.parametrize("theme_name", ["textual-dark", "textual-light"])
async def test_chart_renders(theme_name):
    from tui_gantt.app import GanttApp
    from tui_gantt.demo_data import build_demo_store

    today = date(2024, 6, 12)
    app = GanttApp(store=build_demo_store(today), demo_mode=True, today=today)
    async with app.run_test(size=(120, 40)) as pilot:
        app.theme = theme_name
        await pilot.pause(delay=PAUSE)
        assert app.current_theme.dark is (theme_name == "textual-dark")
        toolbar = app.query_one(GanttToolbar)
        assert toolbar.render().plain.startswith("Today: 2024-06-12")
        header = app.query_one(GanttHeader)
        assert header.render_line(0).cell_length == header.size.width
        view = app.query_one(GanttView)
        assert view.render_line(0).cell_length == view.size.width
        full = view._render_row(view._view, view._scale, 0, view._scale.width)
        assert "█" in "".join(segment.text for segment in full)
