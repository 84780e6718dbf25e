"""Timeline layout: date window, header buckets and bar geometry."""

from __future__ import annotations

import calendar
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from tui_gantt.config import LayoutSettings
from tui_gantt.models import Task, ZoomMode
from tui_gantt.wbs import Row

logger = logging.getLogger(__name__)


class DragMode(Enum):
    """Ways a bar can be dragged on the timeline."""

    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


@dataclass(frozen=True)
class HeaderBucket:
    """One column group of the timeline header."""

    start: date
    end: date  # inclusive
    label: str
    sub_label: str
    left: int
    width: int
    is_weekend: bool = False

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class BarGeometry:
    """Pixel box of a task bar (or milestone marker)."""

    task_id: str
    left: int
    width: int
    top: int
    height: int
    is_milestone: bool = False
    visible: bool = True

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2


@dataclass
class Layout:
    """Complete timeline geometry for one zoom mode."""

    zoom_mode: ZoomMode
    window_start: date
    window_end: date  # inclusive
    pixels_per_day: int
    row_height: int
    today: date
    headers: list[HeaderBucket] = field(default_factory=list)
    bars: dict[str, BarGeometry] = field(default_factory=dict)

    @property
    def total_days(self) -> int:
        return (self.window_end - self.window_start).days + 1

    @property
    def total_width(self) -> int:
        return self.total_days * self.pixels_per_day

    def date_to_x(self, value: date | datetime) -> int:
        """Pixel offset of *value* from the window start (whole days)."""
        return _days_between(self.window_start, value) * self.pixels_per_day

    def x_to_date(self, x: float) -> date:
        return self.window_start + timedelta(days=math.floor(x / self.pixels_per_day))

    @property
    def today_x(self) -> int | None:
        """Pixel offset of today, or None when today is outside the window."""
        if not self.window_start <= self.today <= self.window_end:
            return None
        return self.date_to_x(self.today)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the layout (used by the ``layout`` CLI command)."""
        return {
            "zoomMode": self.zoom_mode.value,
            "windowStart": self.window_start.isoformat(),
            "windowEnd": self.window_end.isoformat(),
            "totalDays": self.total_days,
            "pixelsPerDay": self.pixels_per_day,
            "totalWidth": self.total_width,
            "headers": [
                {
                    "start": h.start.isoformat(),
                    "end": h.end.isoformat(),
                    "label": h.label,
                    "subLabel": h.sub_label,
                    "left": h.left,
                    "width": h.width,
                    "isWeekend": h.is_weekend,
                }
                for h in self.headers
            ],
            "bars": {
                tid: {
                    "left": b.left,
                    "width": b.width,
                    "top": b.top,
                    "height": b.height,
                    "isMilestone": b.is_milestone,
                    "visible": b.visible,
                }
                for tid, b in self.bars.items()
            },
        }


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())


def _days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole days from *start* to *end*, floored like a calendar difference."""
    return (_as_datetime(end) - _as_datetime(start)).days


def _first_of_month(d: date) -> date:
    return d.replace(day=1)


def _last_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def compute_window(
    tasks: Sequence[Task],
    today: date,
    settings: LayoutSettings,
) -> tuple[date, date]:
    """Padded (start, end) window covering every planned date of *tasks*."""
    starts = [t.planned_start for t in tasks if t.planned_start is not None]
    ends = [t.planned_end for t in tasks if t.planned_end is not None]
    if not starts and not ends:
        start = _first_of_month(today)
        return start, start + timedelta(days=settings.empty_window_days - 1)

    lo = min(starts or ends).date()
    hi = max(ends or starts).date()
    hi = max(hi, lo)
    start = _first_of_month(lo) - timedelta(days=settings.month_pad_before_days)
    end = _last_of_month(hi) + timedelta(days=settings.month_pad_after_days)
    return start, end


def _day_headers(start: date, total_days: int, ppd: int) -> list[HeaderBucket]:
    headers: list[HeaderBucket] = []
    for i in range(total_days):
        d = start + timedelta(days=i)
        headers.append(HeaderBucket(
            start=d,
            end=d,
            label=d.strftime("%d"),
            sub_label=d.strftime("%a"),
            left=i * ppd,
            width=ppd,
            is_weekend=d.weekday() >= 5,
        ))
    return headers


def _week_headers(start: date, total_days: int, ppd: int) -> list[HeaderBucket]:
    """Chunks closed on every Sunday, with a partial chunk at the tail."""
    headers: list[HeaderBucket] = []
    chunk_start = 0
    for i in range(total_days):
        d = start + timedelta(days=i)
        if d.weekday() == 6 or i == total_days - 1:
            first = start + timedelta(days=chunk_start)
            length = i - chunk_start + 1
            headers.append(HeaderBucket(
                start=first,
                end=d,
                label=f"{first:%d/%m} - {d:%d/%m}",
                sub_label=f"W{first.isocalendar()[1]}",
                left=chunk_start * ppd,
                width=length * ppd,
            ))
            chunk_start = i + 1
    return headers


def _month_headers(start: date, end: date, ppd: int, zoom_mode: ZoomMode) -> list[HeaderBucket]:
    """One bucket per calendar month; first and last may be partial."""
    headers: list[HeaderBucket] = []
    cursor = start
    left = 0
    while cursor <= end:
        bucket_end = min(_last_of_month(cursor), end)
        days = (bucket_end - cursor).days + 1
        if zoom_mode == ZoomMode.QUARTER:
            sub_label = f"Q{(cursor.month - 1) // 3 + 1} {cursor.year}"
        else:
            sub_label = cursor.strftime("%b")
        headers.append(HeaderBucket(
            start=cursor,
            end=bucket_end,
            label=cursor.strftime("%B %Y"),
            sub_label=sub_label,
            left=left,
            width=days * ppd,
        ))
        left += days * ppd
        cursor = bucket_end + timedelta(days=1)
    return headers


def build_headers(start: date, end: date, zoom_mode: ZoomMode, ppd: int) -> list[HeaderBucket]:
    total_days = (end - start).days + 1
    if zoom_mode == ZoomMode.DAY:
        return _day_headers(start, total_days, ppd)
    if zoom_mode == ZoomMode.WEEK:
        return _week_headers(start, total_days, ppd)
    return _month_headers(start, end, ppd, zoom_mode)


def bar_geometry(
    task: Task,
    row_index: int,
    window_start: date,
    ppd: int,
    settings: LayoutSettings,
) -> BarGeometry:
    """Geometry of one task bar; undated tasks get an invisible zero-width box."""
    top = row_index * settings.row_height
    if not task.has_dates:
        return BarGeometry(task.id, 0, 0, top, settings.row_height,
                           is_milestone=task.is_milestone, visible=False)

    left = _days_between(window_start, task.planned_start) * ppd  # type: ignore[arg-type]
    if task.is_milestone:
        return BarGeometry(task.id, left, settings.milestone_size, top,
                           settings.row_height, is_milestone=True)

    days = max(1, _days_between(task.planned_start, task.planned_end))  # type: ignore[arg-type]
    width = max(1, days * ppd - settings.bar_margin)
    return BarGeometry(task.id, left, width, top, settings.row_height)


def compute_layout(
    tasks: Sequence[Task],
    zoom_mode: ZoomMode,
    rows: Sequence[Row] | None = None,
    *,
    today: date | None = None,
    settings: LayoutSettings | None = None,
) -> Layout:
    """Compute header buckets and bar geometry for *tasks*.

    The window always spans the full task set. When *rows* is given, bars
    are produced for the visible rows only and placed at their row index;
    otherwise every task gets a bar at its position in *tasks*.
    """
    settings = settings or LayoutSettings()
    today = today or date.today()
    ppd = settings.ppd(zoom_mode)

    start, end = compute_window(tasks, today, settings)
    layout = Layout(
        zoom_mode=zoom_mode,
        window_start=start,
        window_end=end,
        pixels_per_day=ppd,
        row_height=settings.row_height,
        today=today,
        headers=build_headers(start, end, zoom_mode, ppd),
    )

    placed: Sequence[tuple[int, Task]]
    if rows is not None:
        placed = [(row.index, row.task) for row in rows]
    else:
        placed = list(enumerate(tasks))
    for index, task in placed:
        layout.bars[task.id] = bar_geometry(task, index, start, ppd, settings)

    logger.debug(
        "layout %s: %s..%s, %d bars, width %dpx",
        zoom_mode.value, start, end, len(layout.bars), layout.total_width,
    )
    return layout


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def drag_update(
    task: Task,
    mode: DragMode,
    delta_px: float,
    pixels_per_day: int,
) -> dict[str, datetime]:
    """Translate a horizontal bar drag into new planned dates.

    Returns the fields to pass to ``Scheduler.update_task``; an empty dict
    means the drag does not change anything (no whole day moved, a resize
    that would invert the bar, or a resize of a milestone).
    """
    if not task.has_dates or pixels_per_day <= 0:
        return {}
    days = _round_half_up(delta_px / pixels_per_day)
    if days == 0:
        return {}
    delta = timedelta(days=days)
    start: datetime = task.planned_start  # type: ignore[assignment]
    end: datetime = task.planned_end  # type: ignore[assignment]

    if mode == DragMode.MOVE:
        return {"planned_start": start + delta, "planned_end": end + delta}
    if task.is_milestone:
        return {}
    if mode == DragMode.RESIZE_START:
        new_start = start + delta
        return {"planned_start": new_start} if new_start < end else {}
    new_end = end + delta
    return {"planned_end": new_end} if new_end > start else {}
