"""Progress roll-up from leaf tasks to phases, plus automatic status."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction

from tui_gantt.models import Dependency, DependencyType, Task, Weighting
from tui_gantt.wbs import TreeNode, WBSTree, build_tree

STATUS_DONE = "done"
STATUS_IN_PROGRESS = "in progress"
STATUS_STARTED = "started"
STATUS_WAITING = "waiting on predecessor"
STATUS_OVERDUE = "deadline passed"
STATUS_NOT_STARTED = "not started"


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _weight(node: TreeNode, weighting: Weighting) -> int:
    if weighting == Weighting.DURATION:
        return max(1, node.task.duration_days)
    return 1


def aggregate_progress(
    tasks: Iterable[Task],
    weighting: Weighting = Weighting.EQUAL,
    tree: WBSTree | None = None,
) -> dict[str, int]:
    """Displayed completion percentage for every task.

    Leaves show their own value. A parent shows the weighted mean of its
    children's displayed values; with the default equal weighting every
    direct child contributes 1/n. A phase without children shows 0. The
    stored percentages are never modified.
    """
    if tree is None:
        tree = build_tree(tasks)
    result: dict[str, int] = {}

    def visit(node: TreeNode) -> int:
        if not node.children:
            value = 0 if node.task.is_phase else node.task.percent_complete
            result[node.task.id] = value
            return value
        total = Fraction(0)
        weights = 0
        for child in node.children:
            w = _weight(child, weighting)
            total += visit(child) * w
            weights += w
        value = _round_half_up(total / weights)
        result[node.task.id] = value
        return value

    for root in tree.roots:
        visit(root)
    return result


@dataclass(frozen=True)
class AutoStatus:
    """Progress and label derived from dates and predecessors."""

    progress: int
    label: str


def _predecessors_ready(
    task: Task,
    tasks_by_id: Mapping[str, Task],
    dependencies: Iterable[Dependency],
) -> tuple[bool, bool]:
    """Return (has_predecessors, all_ready)."""
    has_any = False
    for dep in dependencies:
        if dep.successor_id != task.id:
            continue
        has_any = True
        pred = tasks_by_id.get(dep.predecessor_id)
        if pred is None:
            continue
        if dep.type == DependencyType.FS and pred.percent_complete != 100:
            return True, False
        if dep.type == DependencyType.SS and pred.percent_complete <= 0:
            return True, False
    return has_any, True


def auto_status(
    task: Task,
    tasks_by_id: Mapping[str, Task],
    dependencies: Iterable[Dependency],
    now: datetime,
) -> AutoStatus:
    """Estimate a task's status when no progress has been reported.

    Reported progress always wins. Otherwise a task waits for unfinished
    finish-to-start and unstarted start-to-start predecessors, and beyond
    that its progress follows the calendar.
    """
    pct = task.percent_complete
    if pct > 0:
        if pct == 100:
            return AutoStatus(pct, STATUS_DONE)
        return AutoStatus(pct, STATUS_IN_PROGRESS if pct >= 50 else STATUS_STARTED)

    has_preds, ready = _predecessors_ready(task, tasks_by_id, dependencies)
    if has_preds and not ready:
        return AutoStatus(0, STATUS_WAITING)

    start, end = task.planned_start, task.planned_end
    if end is not None and now > end:
        return AutoStatus(100, STATUS_OVERDUE)
    if start is not None and now >= start:
        if end is None:
            return AutoStatus(50, STATUS_IN_PROGRESS)
        total = (end - start).total_seconds()
        if total <= 0:
            return AutoStatus(50, STATUS_IN_PROGRESS)
        elapsed = (now - start).total_seconds()
        proportional = min(99, max(1, _round_half_up(Fraction(elapsed) / Fraction(total) * 100)))
        return AutoStatus(proportional, STATUS_IN_PROGRESS)
    return AutoStatus(0, STATUS_NOT_STARTED)
