"""Dependency graph: row resolution, neighbour lookup and constraint checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from tui_gantt.models import Dependency, DependencyType, StaleReference, Task
from tui_gantt.wbs import Row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedDependency:
    """A dependency whose endpoints were found among the visible rows."""

    dependency: Dependency
    predecessor_row: int
    successor_row: int


@dataclass(frozen=True)
class ConstraintViolation:
    """A dependency whose planned dates do not satisfy its type and lag."""

    dependency: Dependency
    required: datetime
    actual: datetime

    @property
    def slip_days(self) -> int:
        return (self.required - self.actual).days

    def __str__(self) -> str:
        dep = self.dependency
        return (
            f"{dep.predecessor_id} -> {dep.successor_id} ({dep.label()}): "
            f"needs {self.required.isoformat()}, planned {self.actual.isoformat()}"
        )


class DependencyGraph:
    """Directed predecessor → successor edges over the current task set."""

    def __init__(
        self,
        dependencies: Iterable[Dependency],
        rows: Iterable[Row] = (),
        task_ids: Iterable[str] | None = None,
    ) -> None:
        self.dependencies = list(dependencies)
        self.rows = list(rows)
        self._row_index = {row.task.id: row.index for row in self.rows}
        self._task_ids = set(task_ids) if task_ids is not None else set(self._row_index)
        self._successors: dict[str, list[str]] = {}
        self._predecessors: dict[str, list[str]] = {}
        for dep in self.dependencies:
            self._successors.setdefault(dep.predecessor_id, []).append(dep.successor_id)
            self._predecessors.setdefault(dep.successor_id, []).append(dep.predecessor_id)
        self.warnings: list[StaleReference] = []

    def resolve(self) -> list[ResolvedDependency]:
        """Map each dependency to its predecessor and successor row positions.

        Edges pointing at unknown tasks are skipped and reported in
        ``warnings``; edges into collapsed (known but hidden) rows are
        skipped silently.
        """
        self.warnings = []
        resolved: list[ResolvedDependency] = []
        for dep in self.dependencies:
            missing = [tid for tid in (dep.predecessor_id, dep.successor_id) if tid not in self._task_ids]
            if missing:
                for tid in missing:
                    self.warnings.append(StaleReference(
                        kind="dependency", record_id=dep.id, missing_id=tid,
                        message=f"dependency endpoint {tid} not found; edge skipped",
                    ))
                    logger.debug("dependency %s references missing task %s", dep.id, tid)
                continue
            pred_row = self._row_index.get(dep.predecessor_id)
            succ_row = self._row_index.get(dep.successor_id)
            if pred_row is None or succ_row is None:
                continue
            resolved.append(ResolvedDependency(dep, pred_row, succ_row))
        return resolved

    def predecessors_of(self, task_id: str) -> list[str]:
        """Tasks *task_id* depends on."""
        return list(self._predecessors.get(task_id, []))

    def successors_of(self, task_id: str) -> list[str]:
        """Tasks that depend on *task_id*."""
        return list(self._successors.get(task_id, []))

    def referencing(self, task_id: str) -> list[Dependency]:
        """Every dependency where *task_id* is predecessor or successor."""
        return [
            dep for dep in self.dependencies
            if dep.predecessor_id == task_id or dep.successor_id == task_id
        ]

    def find(self, predecessor_id: str, successor_id: str) -> Dependency | None:
        for dep in self.dependencies:
            if dep.predecessor_id == predecessor_id and dep.successor_id == successor_id:
                return dep
        return None

    def would_create_cycle(self, predecessor_id: str, successor_id: str) -> bool:
        """True if adding predecessor → successor would close a cycle."""
        if predecessor_id == successor_id:
            return True
        seen: set[str] = set()
        stack = [successor_id]
        while stack:
            current = stack.pop()
            if current == predecessor_id:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._successors.get(current, []))
        return False

    def predecessor_labels(self, task_id: str, tasks_by_id: Mapping[str, Task]) -> list[str]:
        """WBS codes (or names when uncoded) of the tasks *task_id* depends on."""
        labels: list[str] = []
        for pid in self.predecessors_of(task_id):
            pred = tasks_by_id.get(pid)
            if pred is not None:
                labels.append(pred.wbs_code or pred.name)
        return labels


def _required_date(dep: Dependency, pred: Task, succ: Task) -> tuple[datetime, datetime] | None:
    """Return (required, actual) for the constrained edge of *succ*."""
    if dep.type == DependencyType.FS:
        anchor, actual = pred.planned_end, succ.planned_start
    elif dep.type == DependencyType.SS:
        anchor, actual = pred.planned_start, succ.planned_start
    elif dep.type == DependencyType.FF:
        anchor, actual = pred.planned_end, succ.planned_end
    else:
        anchor, actual = pred.planned_start, succ.planned_end
    if anchor is None or actual is None:
        return None
    return anchor + dep.lag, actual


def check_constraints(tasks: Iterable[Task], dependencies: Iterable[Dependency]) -> list[ConstraintViolation]:
    """Report dependencies whose planned dates break their type and lag.

    Read-only: nothing is rescheduled and the layout is not affected.
    Undated tasks and unknown ids are ignored.
    """
    by_id = {t.id: t for t in tasks}
    violations: list[ConstraintViolation] = []
    for dep in dependencies:
        pred = by_id.get(dep.predecessor_id)
        succ = by_id.get(dep.successor_id)
        if pred is None or succ is None:
            continue
        dates = _required_date(dep, pred, succ)
        if dates is None:
            continue
        required, actual = dates
        if actual < required:
            violations.append(ConstraintViolation(dep, required, actual))
    return violations
