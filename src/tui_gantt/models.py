"""Data models for TUI Gantt."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

from tui_gantt.errors import ValidationError


class TaskKind(Enum):
    """WBS item kind."""

    TASK = "task"
    PHASE = "phase"
    MILESTONE = "milestone"


class DependencyType(Enum):
    """Dependency constraint type."""

    FS = "FS"  # finish-to-start
    SS = "SS"  # start-to-start
    FF = "FF"  # finish-to-finish
    SF = "SF"  # start-to-finish


class ZoomMode(Enum):
    """Timeline display granularity."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class Weighting(Enum):
    """How children contribute to a parent's rolled-up progress."""

    EQUAL = "equal"
    DURATION = "duration"


KIND_ICONS = {
    TaskKind.TASK: "○",
    TaskKind.PHASE: "▣",
    TaskKind.MILESTONE: "◆",
}

DATE_FORMAT_PRESETS: dict[str, str] = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD/MM/YYYY": "%d/%m/%Y",
    "DD/MM/YY": "%d/%m/%y",
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD.MM.YYYY": "%d.%m.%Y",
    "MM-DD": "%m-%d",
}
DEFAULT_DATE_FORMAT = "DD/MM/YY"


def format_date(d: date | datetime | None, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Format a date for display. Returns empty string for None."""
    if d is None:
        return ""
    fmt = DATE_FORMAT_PRESETS.get(date_format)
    if fmt is None:
        return d.isoformat()
    return d.strftime(fmt)


def parse_datetime(value: Any, field_name: str = "date") -> datetime | None:
    """Parse an ISO date or datetime into a naive datetime.

    Aware values are converted to UTC and made naive so that every
    datetime in the engine compares like with like.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(field_name, f"invalid ISO date: {value!r}") from None
    else:
        raise ValidationError(field_name, f"invalid ISO date: {value!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _format_datetime(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _parse_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)  # type: ignore[attr-defined]
        raise ValidationError(field_name, f"{value!r} is not one of: {allowed}") from None


def parse_kind(value: Any) -> TaskKind:
    return _parse_enum(TaskKind, value, "kind")


def parse_dependency_type(value: Any) -> DependencyType:
    return _parse_enum(DependencyType, str(value).upper() if isinstance(value, str) else value, "type")


def parse_zoom_mode(value: Any) -> ZoomMode:
    return _parse_enum(ZoomMode, str(value).lower() if isinstance(value, str) else value, "zoom_mode")


def parse_percent(value: Any) -> int:
    """Parse a 0-100 integer percentage."""
    try:
        percent = int(value)
    except (TypeError, ValueError):
        raise ValidationError("percent_complete", f"not an integer: {value!r}") from None
    if not 0 <= percent <= 100:
        raise ValidationError("percent_complete", f"must be between 0 and 100, got {percent}")
    return percent


def _record_int(record: dict[str, Any], key: str) -> int:
    value = record.get(key) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(key, f"not an integer: {value!r}") from None


@dataclass(frozen=True)
class Task:
    """A single WBS item. Immutable; use dataclasses.replace() to edit."""

    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    parent_id: str | None = None
    wbs_code: str = ""
    description: str = ""
    kind: TaskKind = TaskKind.TASK
    planned_start: datetime | None = None
    planned_end: datetime | None = None
    percent_complete: int = 0
    order: int = 0
    level: int = 0  # derived depth, 0 = root

    @property
    def is_milestone(self) -> bool:
        return self.kind == TaskKind.MILESTONE

    @property
    def is_phase(self) -> bool:
        return self.kind == TaskKind.PHASE

    @property
    def has_dates(self) -> bool:
        return self.planned_start is not None and self.planned_end is not None

    @property
    def duration_days(self) -> int:
        """Whole days between planned start and end (0 for undated tasks)."""
        if not self.has_dates:
            return 0
        return (self.planned_end - self.planned_start).days  # type: ignore[operator]

    @property
    def icon(self) -> str:
        return KIND_ICONS[self.kind]

    def with_level(self, level: int) -> Task:
        if level == self.level:
            return self
        return replace(self, level=level)

    def to_record(self) -> dict[str, Any]:
        """Convert to a plain record for the external store."""
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "wbsCode": self.wbs_code,
            "name": self.name,
            "description": self.description,
            "kind": self.kind.value,
            "plannedStart": _format_datetime(self.planned_start),
            "plannedEnd": _format_datetime(self.planned_end),
            "percentComplete": self.percent_complete,
            "order": self.order,
            "level": self.level,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Task:
        """Build a Task from a store record. Raises ValidationError on bad fields."""
        task_id = record.get("id")
        if not task_id:
            raise ValidationError("id", "task record without id")
        parent_id = record.get("parentId") or None
        order = _record_int(record, "order")
        level = _record_int(record, "level")
        return cls(
            id=str(task_id),
            parent_id=str(parent_id) if parent_id is not None else None,
            wbs_code=str(record.get("wbsCode") or ""),
            name=str(record.get("name") or ""),
            description=str(record.get("description") or ""),
            kind=parse_kind(record.get("kind") or TaskKind.TASK.value),
            planned_start=parse_datetime(record.get("plannedStart"), "plannedStart"),
            planned_end=parse_datetime(record.get("plannedEnd"), "plannedEnd"),
            percent_complete=parse_percent(record.get("percentComplete") or 0),
            order=order,
            level=level,
        )


@dataclass(frozen=True)
class Dependency:
    """A directed predecessor → successor constraint."""

    predecessor_id: str
    successor_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    type: DependencyType = DependencyType.FS
    lag_days: int = 0

    @property
    def lag(self) -> timedelta:
        return timedelta(days=self.lag_days)

    def label(self) -> str:
        """Compact label such as 'FS+2' or 'SS-1'."""
        if self.lag_days == 0:
            return self.type.value
        return f"{self.type.value}{self.lag_days:+d}"

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "predecessorId": self.predecessor_id,
            "successorId": self.successor_id,
            "type": self.type.value,
            "lagDays": self.lag_days,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Dependency:
        dep_id = record.get("id")
        if not dep_id:
            raise ValidationError("id", "dependency record without id")
        lag_days = _record_int(record, "lagDays")
        return cls(
            id=str(dep_id),
            predecessor_id=str(record.get("predecessorId") or ""),
            successor_id=str(record.get("successorId") or ""),
            type=parse_dependency_type(record.get("type") or DependencyType.FS.value),
            lag_days=lag_days,
        )


@dataclass
class StaleReference:
    """A reference that could not be resolved during a read/layout pass."""

    kind: str  # "parent", "dependency", "cycle"
    record_id: str
    missing_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.record_id}: {self.message}"


@dataclass
class ViewConfig:
    """Per-project view state owned by the UI layer."""

    zoom_mode: ZoomMode = ZoomMode.WEEK
    weighting: Weighting = Weighting.EQUAL
    show_dependencies: bool = True
    expanded: set[str] | None = None  # None: every parent starts expanded


@dataclass
class ProjectConfig:
    """Project-level configuration stored in .tui-gantt/config.toml."""

    name: str = ""
    date_format: str = DEFAULT_DATE_FORMAT
    view: ViewConfig = field(default_factory=ViewConfig)
