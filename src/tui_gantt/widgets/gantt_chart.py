"""Gantt chart custom widget.

Draws the engine's pixel layout on a character grid: one terminal row per
WBS row and one character column per ``cell_px`` pixels of the current
zoom mode.
"""

from __future__ import annotations

import math
from datetime import date

from textual.app import ComposeResult
from textual.containers import Container
from textual.geometry import Size
from textual.message import Message
from textual.scroll_view import ScrollView
from textual.strip import Strip
from textual.widget import Widget

from rich.segment import Segment
from rich.style import Style
from rich.text import Text

from tui_gantt.config import LayoutSettings
from tui_gantt.models import ZoomMode
from tui_gantt.routing import ConnectorPath
from tui_gantt.scheduler import ScheduleView
from tui_gantt.timeline import Layout
from tui_gantt import theme

ZOOM_LABELS = {ZoomMode.DAY: "D", ZoomMode.WEEK: "W", ZoomMode.MONTH: "M", ZoomMode.QUARTER: "Q"}


class CellScale:
    """Pixel to character-cell conversion for one layout."""

    def __init__(self, layout: Layout, cell_px: int, row_height: int) -> None:
        self.layout = layout
        self.cell_px = max(1, cell_px)
        self.row_height = max(1, row_height)

    def col(self, x: float) -> int:
        return int(math.floor(x / self.cell_px))

    def row(self, y: float) -> int:
        return int(math.floor(y / self.row_height))

    @property
    def width(self) -> int:
        return max(1, math.ceil(self.layout.total_width / self.cell_px))

    def col_date(self, c: int) -> date:
        return self.layout.x_to_date(c * self.cell_px)

    @property
    def shows_days(self) -> bool:
        """True when one character covers at most one day."""
        return self.cell_px <= self.layout.pixels_per_day


def connector_cells(paths: list[ConnectorPath], scale: CellScale) -> dict[tuple[int, int], str]:
    """Box-drawing glyphs for every connector, keyed by (row, col)."""
    cells: dict[tuple[int, int], str] = {}
    for path in paths:
        r0, r1 = path.predecessor_row, path.successor_row
        c_from = scale.col(path.start[0])
        c_corner = scale.col(path.corner_x)
        c_to = scale.col(path.end[0])

        for c in range(c_from, c_corner):
            cells[(r0, c)] = "─"
        if r1 != r0:
            down = r1 > r0
            for r in range(min(r0, r1) + 1, max(r0, r1)):
                cells[(r, c_corner)] = "│"
            cells[(r0, c_corner)] = "┐" if down else "┘"
            cells[(r1, c_corner)] = "└" if down else "┌"
        step = 1 if c_to >= c_corner else -1
        for c in range(c_corner + step, c_to, step):
            cells[(r1, c)] = "─"
        cells[(r1, c_to)] = "▶"
    return cells


class GanttToolbar(Widget):
    """1-line toolbar showing today's date and clickable zoom buttons."""

    class ZoomChanged(Message):
        def __init__(self, zoom_mode: ZoomMode) -> None:
            super().__init__()
            self.zoom_mode = zoom_mode

    DEFAULT_CSS = """
    GanttToolbar {
        height: 1;
        background: $background;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._zoom_mode = ZoomMode.WEEK
        self._today = date.today()
        self._button_regions: list[tuple[int, int, ZoomMode]] = []

    def update_toolbar(self, zoom_mode: ZoomMode, today: date) -> None:
        self._zoom_mode = zoom_mode
        self._today = today
        self.refresh()

    def render(self) -> Text:
        dark = theme.is_dark(self)
        text = Text()
        text.append(f"Today: {self._today.isoformat()}",
                    _fg(theme.GANTT_TODAY_MARKER, dark, bold=True))
        text.append("  │ ", Style(dim=True))

        self._button_regions = []
        modes = list(ZoomMode)
        for i, mode in enumerate(modes):
            start = len(text)
            label = f" {ZOOM_LABELS[mode]} "
            if mode == self._zoom_mode:
                text.append(label, Style(bold=True, reverse=True))
            else:
                text.append(label, Style(dim=True))
            self._button_regions.append((start, len(text), mode))
            if i < len(modes) - 1:
                text.append("│", Style(dim=True))
        return text

    def on_click(self, event) -> None:
        for start, end, mode in self._button_regions:
            if start <= event.x < end:
                if mode != self._zoom_mode:
                    self.post_message(self.ZoomChanged(mode))
                return


def _fg(pair: theme.ColorPair, dark: bool, bold: bool = False) -> Style:
    """Foreground style from a theme entry; entries may carry attributes like "bold #ff5f5f"."""
    style = Style.parse(pair.resolve(dark))
    return style + Style(bold=True) if bold else style


class GanttHeader(Widget):
    """Two header rows built from the layout's header buckets."""

    DEFAULT_CSS = """
    GanttHeader {
        height: 2;
        background: $background;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._scale: CellScale | None = None
        self.scroll_x_offset: int = 0

    def update_header(self, scale: CellScale) -> None:
        self._scale = scale
        self.refresh()

    def render_line(self, y: int) -> Strip:
        scale = self._scale
        if scale is None or y > 1:
            return Strip.blank(self.size.width)
        width = max(self.size.width, scale.width)
        full = self._render_bucket_row(scale, width, sub=(y == 1))
        return full.crop(self.scroll_x_offset, self.scroll_x_offset + self.size.width)

    def _render_bucket_row(self, scale: CellScale, width: int, sub: bool) -> Strip:
        dark = theme.is_dark(self)
        header_style = _fg(theme.GANTT_HEADER, dark, bold=True)
        band = Style(bgcolor=theme.GANTT_BAND_BG.resolve(dark))
        base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))
        weekend = Style(bgcolor=theme.GANTT_WEEKEND_BG.resolve(dark))

        segments: list[Segment] = []
        rendered = 0
        for i, bucket in enumerate(scale.layout.headers):
            c0 = scale.col(bucket.left)
            c1 = scale.col(bucket.left + bucket.width)
            span = c1 - max(c0, rendered)
            if span <= 0:
                continue
            text = bucket.sub_label if sub else bucket.label
            bg = weekend if bucket.is_weekend else (band if i % 2 else base)
            segments.append(Segment(text[:span].center(span), header_style + bg))
            rendered += span
        if rendered < width:
            segments.append(Segment(" " * (width - rendered), base))
        return Strip(segments)


class GanttView(ScrollView):
    """Renders bars, milestones, connectors and the today marker."""

    class ScrollXChanged(Message):
        """Emitted when horizontal scroll position changes."""

        def __init__(self, scroll_x: float) -> None:
            super().__init__()
            self.scroll_x = scroll_x

    class ScrollYChanged(Message):
        """Emitted when vertical scroll position changes."""

        def __init__(self, scroll_y: float) -> None:
            super().__init__()
            self.scroll_y = scroll_y

    DEFAULT_CSS = """
    GanttView {
        height: 1fr;
        background: $background;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._view: ScheduleView | None = None
        self._scale: CellScale | None = None
        self._connectors: dict[tuple[int, int], str] = {}
        self._highlighted_row: int = -1

    def update_gantt(self, view: ScheduleView, scale: CellScale, show_dependencies: bool) -> None:
        self._view = view
        self._scale = scale
        self._connectors = connector_cells(view.paths, scale) if show_dependencies else {}
        self.virtual_size = Size(scale.width, max(len(view.rows), 1))
        self.refresh()

    def set_highlight(self, row_index: int) -> None:
        if row_index != self._highlighted_row:
            self._highlighted_row = row_index
            self.refresh()

    def watch_scroll_x(self, old: float, new: float) -> None:
        super().watch_scroll_x(old, new)
        self.post_message(self.ScrollXChanged(new))

    def watch_scroll_y(self, old: float, new: float) -> None:
        super().watch_scroll_y(old, new)
        self.post_message(self.ScrollYChanged(new))

    def render_line(self, y: int) -> Strip:
        view, scale = self._view, self._scale
        if view is None or scale is None or not view.rows:
            if y == 0:
                return Strip(Text("  No tasks to chart", style="dim").render(self.app.console))
            return Strip.blank(self.size.width)

        row_index = y + int(self.scroll_y)
        width = max(self.size.width, scale.width)
        full = self._render_row(view, scale, row_index, width)
        scroll_x = int(self.scroll_x)
        return full.crop(scroll_x, scroll_x + self.size.width)

    def _render_row(self, view: ScheduleView, scale: CellScale, row_index: int, width: int) -> Strip:
        dark = theme.is_dark(self)
        if row_index == self._highlighted_row:
            base = Style(bgcolor=theme.GANTT_HIGHLIGHT_BG.resolve(dark))
        elif row_index % 2:
            base = Style(bgcolor=theme.GANTT_BAND_BG.resolve(dark))
        else:
            base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))
        weekend = Style(bgcolor=theme.GANTT_WEEKEND_BG.resolve(dark))
        today_style = _fg(theme.GANTT_TODAY_MARKER, dark)
        dep_style = _fg(theme.GANTT_DEPENDENCY_ARROW, dark)

        glyphs: dict[int, tuple[str, Style]] = {}
        today_x = view.layout.today_x
        if today_x is not None:
            glyphs[scale.col(today_x)] = ("│", today_style)
        for (r, c), ch in self._connectors.items():
            if r == row_index:
                glyphs[c] = (ch, dep_style)

        if 0 <= row_index < len(view.rows):
            task = view.rows[row_index].task
            bar = view.layout.bars.get(task.id)
            if bar is not None and bar.visible:
                if bar.is_milestone:
                    ms_style = _fg(theme.GANTT_MILESTONE, dark, bold=True)
                    glyphs[scale.col(bar.left)] = ("◆", ms_style)
                else:
                    progress = view.progress.get(task.id, 0)
                    bar_style = _fg(theme.bar_color(progress, task.is_phase), dark)
                    start_col = scale.col(bar.left)
                    length = max(1, scale.col(bar.right - 1) - start_col + 1)
                    filled = int(length * progress / 100)
                    for i in range(length):
                        glyphs[start_col + i] = ("█" if i < filled else "▒", bar_style)

        shade_weekends = scale.shows_days and row_index != self._highlighted_row
        segments: list[Segment] = []
        for c in range(width):
            bg = base
            if shade_weekends and scale.col_date(c).weekday() >= 5:
                bg = weekend
            ch, style = glyphs.get(c, (" ", Style()))
            segments.append(Segment(ch, style + bg))
        return Strip(segments)


class GanttChart(Container):
    """Toolbar, header and chart body for one schedule view."""

    DEFAULT_CSS = """
    GanttChart {
        width: 1fr;
        height: 1fr;
    }
    GanttChart #gantt-header {
        height: 2;
    }
    GanttChart #gantt-view {
        height: 1fr;
    }
    """

    def __init__(self, settings: LayoutSettings | None = None) -> None:
        super().__init__()
        self._settings = settings or LayoutSettings()
        self._scale: CellScale | None = None

    def compose(self) -> ComposeResult:
        yield GanttToolbar(id="gantt-toolbar")
        yield GanttHeader(id="gantt-header")
        yield GanttView(id="gantt-view")

    @property
    def gantt_view(self) -> GanttView:
        return self.query_one("#gantt-view", GanttView)

    def update_view(
        self,
        view: ScheduleView,
        settings: LayoutSettings | None = None,
        show_dependencies: bool = True,
    ) -> None:
        if settings is not None:
            self._settings = settings
        layout = view.layout
        self._scale = CellScale(
            layout,
            self._settings.cell_px[layout.zoom_mode],
            self._settings.row_height,
        )
        self.query_one("#gantt-toolbar", GanttToolbar).update_toolbar(layout.zoom_mode, layout.today)
        self.query_one("#gantt-header", GanttHeader).update_header(self._scale)
        self.gantt_view.update_gantt(view, self._scale, show_dependencies)

    def set_highlight(self, row_index: int) -> None:
        self.gantt_view.set_highlight(row_index)

    def go_to_today(self) -> None:
        if self._scale is None:
            return
        today_x = self._scale.layout.today_x
        if today_x is not None:
            col = self._scale.col(today_x)
            self.gantt_view.scroll_to(x=max(0, col - self.gantt_view.size.width // 3), animate=False)

    def on_gantt_view_scroll_x_changed(self, event: GanttView.ScrollXChanged) -> None:
        header = self.query_one("#gantt-header", GanttHeader)
        header.scroll_x_offset = int(event.scroll_x)
        header.refresh()
