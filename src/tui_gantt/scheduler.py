"""Scheduling mutation surface and the derived schedule view."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any

from tui_gantt.config import LayoutSettings
from tui_gantt.dependencies import ConstraintViolation, DependencyGraph, check_constraints
from tui_gantt.errors import CycleError, MissingReferenceError, ValidationError
from tui_gantt.models import (
    Dependency,
    DependencyType,
    StaleReference,
    Task,
    TaskKind,
    Weighting,
    ZoomMode,
    parse_datetime,
    parse_dependency_type,
    parse_kind,
    parse_percent,
)
from tui_gantt.progress import aggregate_progress
from tui_gantt.routing import ConnectorPath, route_graph
from tui_gantt.store import TaskStore
from tui_gantt.timeline import Layout, compute_layout
from tui_gantt.wbs import Row, build_tree, descendants_of, flatten_tree

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "name", "description", "kind", "planned_start", "planned_end",
    "percent_complete", "parent_id",
})

PredecessorSpec = tuple[str, DependencyType | str, int]


@dataclass
class ScheduleView:
    """Everything a renderer needs for one refresh."""

    rows: list[Row]
    layout: Layout
    progress: dict[str, int]
    paths: list[ConnectorPath]
    warnings: list[StaleReference] = field(default_factory=list)
    violations: list[ConstraintViolation] = field(default_factory=list)
    tasks_by_id: dict[str, Task] = field(default_factory=dict)
    dependencies: list[Dependency] = field(default_factory=list)

    def row_for(self, task_id: str) -> Row | None:
        for row in self.rows:
            if row.task.id == task_id:
                return row
        return None

    def predecessor_labels(self, task_id: str) -> list[str]:
        graph = DependencyGraph(self.dependencies, task_ids=self.tasks_by_id)
        return graph.predecessor_labels(task_id, self.tasks_by_id)


def build_schedule_view(
    tasks: Iterable[Task],
    dependencies: Iterable[Dependency],
    expanded: set[str] | frozenset[str],
    zoom_mode: ZoomMode,
    *,
    weighting: Weighting = Weighting.EQUAL,
    today: date | None = None,
    settings: LayoutSettings | None = None,
) -> ScheduleView:
    """Run tree, layout, progress and routing over one snapshot of records."""
    settings = settings or LayoutSettings()
    tasks = list(tasks)
    dependencies = list(dependencies)

    tree = build_tree(tasks)
    rows = flatten_tree(tree, expanded)
    unique_tasks = [node.task for node in tree.nodes.values()]
    layout = compute_layout(unique_tasks, zoom_mode, rows, today=today, settings=settings)
    progress = aggregate_progress(unique_tasks, weighting, tree=tree)

    graph = DependencyGraph(dependencies, rows, task_ids=tree.nodes)
    paths = route_graph(graph, layout.bars, settings)

    return ScheduleView(
        rows=rows,
        layout=layout,
        progress=progress,
        paths=paths,
        warnings=tree.warnings + graph.warnings,
        violations=check_constraints(unique_tasks, dependencies),
        tasks_by_id={node.task.id: node.task.with_level(depth) for node, depth in tree.walk()},
        dependencies=dependencies,
    )


def _require_name(name: Any) -> str:
    text = str(name or "").strip()
    if not text:
        raise ValidationError("name", "name is required")
    return text


def _check_dates(kind: TaskKind, start: datetime | None, end: datetime | None) -> tuple[datetime, datetime]:
    """Validate a planned date pair; milestones collapse to their start."""
    if start is None:
        raise ValidationError("planned_start", "planned start is required")
    if kind == TaskKind.MILESTONE:
        return start, start
    if end is None:
        raise ValidationError("planned_end", "planned end is required")
    if end < start:
        raise ValidationError("planned_end", "planned end is before planned start")
    return start, end


def _parse_lag(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("lag_days", f"not an integer: {value!r}") from None


def parse_predecessor_refs(text: str) -> list[tuple[str, str, int]]:
    """Parse ``REF[:TYPE[:LAG]]`` entries separated by ';' or ','.

    ``"1.2; 1.3:SS:2"`` gives ``[("1.2", "FS", 0), ("1.3", "SS", 2)]``.
    References are returned as typed; resolving them is up to the caller.
    """
    links: list[tuple[str, str, int]] = []
    for chunk in text.replace(",", ";").split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        ref, _, rest = chunk.partition(":")
        dep_type, _, lag = rest.partition(":")
        try:
            lag_days = int(lag) if lag.strip() else 0
        except ValueError:
            raise ValidationError("predecessors", f"invalid lag in {chunk!r}") from None
        links.append((ref.strip(), (dep_type.strip() or "FS").upper(), lag_days))
    return links


class Scheduler:
    """Validated create/update/delete operations over a TaskStore.

    Every operation validates against a fresh snapshot of the store and
    raises before any store call when the request is rejected. Callers
    then call :meth:`refresh` to re-derive the view.
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        settings: LayoutSettings | None = None,
        weighting: Weighting = Weighting.EQUAL,
    ) -> None:
        self.store = store
        self.settings = settings or LayoutSettings()
        self.weighting = weighting

    # ── lookups ──────────────────────────────────────────────────

    def _tasks_by_id(self) -> dict[str, Task]:
        return {t.id: t for t in self.store.list_tasks()}

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise MissingReferenceError("task", task_id)
        return task

    def resolve_ref(self, ref: str) -> str:
        """Map a task id or WBS code to a task id.

        Unknown references are returned unchanged so the caller's
        operation reports them as missing.
        """
        tasks = self.store.list_tasks()
        if any(t.id == ref for t in tasks):
            return ref
        matches = [t.id for t in tasks if t.wbs_code == ref]
        if len(matches) > 1:
            raise ValidationError("task", f"WBS code {ref} is ambiguous; use the task id")
        return matches[0] if matches else ref

    def _parent_for(self, parent_id: str | None, tasks_by_id: dict[str, Task]) -> Task | None:
        if not parent_id:
            return None
        parent = tasks_by_id.get(parent_id)
        if parent is None:
            raise MissingReferenceError("parent", parent_id)
        if parent.is_milestone:
            raise ValidationError("parent_id", f"milestone {parent.wbs_code or parent.id} cannot have children")
        return parent

    # ── tasks ────────────────────────────────────────────────────

    def create_task(
        self,
        name: str,
        kind: TaskKind | str = TaskKind.TASK,
        planned_start: datetime | str | None = None,
        planned_end: datetime | str | None = None,
        parent_id: str | None = None,
        description: str = "",
        percent_complete: int = 0,
        predecessors: Sequence[PredecessorSpec] = (),
    ) -> Task:
        """Create a task under *parent_id* (or as a root).

        The new task is appended after its siblings; its WBS code is the
        parent's code plus its order. *predecessors* is a list of
        ``(predecessor_id, type, lag_days)`` linked in the same call.
        """
        name = _require_name(name)
        kind = parse_kind(kind)
        start, end = _check_dates(
            kind,
            parse_datetime(planned_start, "planned_start"),
            parse_datetime(planned_end, "planned_end"),
        )
        percent = parse_percent(percent_complete)

        tasks_by_id = self._tasks_by_id()
        parent = self._parent_for(parent_id, tasks_by_id)

        links: list[tuple[str, DependencyType, int]] = []
        for pred_id, dep_type, lag in predecessors:
            if pred_id not in tasks_by_id:
                raise MissingReferenceError("predecessor", pred_id)
            links.append((pred_id, parse_dependency_type(dep_type), _parse_lag(lag)))

        sibling_orders = [
            t.order for t in tasks_by_id.values()
            if (t.parent_id or None) == (parent.id if parent else None)
        ]
        order = max(sibling_orders, default=0) + 1
        if parent is not None:
            wbs_code = f"{parent.wbs_code}.{order}" if parent.wbs_code else str(order)
            level = build_tree(tasks_by_id.values()).levels().get(parent.id, parent.level) + 1
        else:
            wbs_code = str(order)
            level = 0

        task = Task(
            name=name,
            parent_id=parent.id if parent else None,
            wbs_code=wbs_code,
            description=description,
            kind=kind,
            planned_start=start,
            planned_end=end,
            percent_complete=0 if kind == TaskKind.PHASE else percent,
            order=order,
            level=level,
        )
        self.store.insert_task(task)
        logger.info("created %s %s %r (%s)", kind.value, wbs_code, name, task.id)

        for pred_id, dep_type, lag in links:
            self.store.insert_dependency(Dependency(
                predecessor_id=pred_id, successor_id=task.id, type=dep_type, lag_days=lag,
            ))
            logger.info("linked %s -> %s (%s%+d)", pred_id, task.id, dep_type.value, lag)
        return task

    def update_task(self, task_id: str, **fields: Any) -> Task:
        """Apply any subset of the mutable fields to a task."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be updated")

        tasks_by_id = self._tasks_by_id()
        task = tasks_by_id.get(task_id)
        if task is None:
            raise MissingReferenceError("task", task_id)

        changes: dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = _require_name(fields["name"])
        if "description" in fields:
            changes["description"] = str(fields["description"] or "")
        kind = parse_kind(fields["kind"]) if "kind" in fields else task.kind
        if kind != task.kind:
            changes["kind"] = kind
            has_children = any(t.parent_id == task_id for t in tasks_by_id.values())
            if kind == TaskKind.MILESTONE and has_children:
                raise ValidationError("kind", "a task with children cannot become a milestone")

        start = parse_datetime(fields["planned_start"], "planned_start") if "planned_start" in fields else task.planned_start
        end = parse_datetime(fields["planned_end"], "planned_end") if "planned_end" in fields else task.planned_end
        dates_touched = "planned_start" in fields or "planned_end" in fields or "kind" in changes
        if dates_touched:
            if kind == TaskKind.MILESTONE and start is None:
                start = end
            start, end = _check_dates(kind, start, end)
            changes["planned_start"] = start
            changes["planned_end"] = end

        if "percent_complete" in fields:
            percent = parse_percent(fields["percent_complete"])
            if kind == TaskKind.PHASE:
                logger.debug("ignoring stored percent for phase %s", task_id)
            else:
                changes["percent_complete"] = percent

        if "parent_id" in fields:
            new_parent_id = fields["parent_id"] or None
            if new_parent_id != task.parent_id:
                changes.update(self._reparent(task, new_parent_id, tasks_by_id))

        if not changes:
            return task
        updated = replace(task, **changes)
        self.store.update_task(updated)
        logger.info("updated task %s: %s", task_id, ", ".join(sorted(changes)))
        if "parent_id" in changes:
            tasks_by_id[task_id] = updated
            self._sync_descendant_levels(task_id, tasks_by_id)
        return updated

    def _sync_descendant_levels(self, task_id: str, tasks_by_id: dict[str, Task]) -> None:
        levels = build_tree(tasks_by_id.values()).levels()
        for child_id in descendants_of(task_id, tasks_by_id.values()):
            child = tasks_by_id[child_id]
            level = levels.get(child_id, child.level)
            if level != child.level:
                self.store.update_task(replace(child, level=level))
                logger.debug("level of %s is now %d", child_id, level)

    def _reparent(self, task: Task, new_parent_id: str | None, tasks_by_id: dict[str, Task]) -> dict[str, Any]:
        if new_parent_id == task.id:
            raise CycleError("parent_id", "a task cannot be its own parent")
        parent = self._parent_for(new_parent_id, tasks_by_id)
        if parent is None:
            return {"parent_id": None, "level": 0}
        if parent.id in descendants_of(task.id, tasks_by_id.values()):
            raise CycleError("parent_id", f"{parent.id} is a descendant of {task.id}")
        levels = build_tree(tasks_by_id.values()).levels()
        return {"parent_id": parent.id, "level": levels.get(parent.id, parent.level) + 1}

    def delete_task(self, task_id: str) -> int:
        """Delete a task and every dependency touching it.

        Children are left in place and surface as roots. Returns the
        number of dependencies removed.
        """
        if self.store.get_task(task_id) is None:
            raise MissingReferenceError("task", task_id)
        removed = self.store.delete_dependencies_for(task_id)
        self.store.delete_task(task_id)
        logger.info("deleted task %s (%d dependencies)", task_id, removed)
        return removed

    # ── dependencies ─────────────────────────────────────────────

    def create_dependency(
        self,
        predecessor_id: str,
        successor_id: str,
        type: DependencyType | str = DependencyType.FS,
        lag_days: int = 0,
    ) -> Dependency:
        if not predecessor_id:
            raise ValidationError("predecessor_id", "predecessor is required")
        if not successor_id:
            raise ValidationError("successor_id", "successor is required")
        if predecessor_id == successor_id:
            raise ValidationError("successor_id", "a task cannot depend on itself")
        dep_type = parse_dependency_type(type)
        lag = _parse_lag(lag_days)

        tasks_by_id = self._tasks_by_id()
        if predecessor_id not in tasks_by_id:
            raise MissingReferenceError("predecessor", predecessor_id)
        if successor_id not in tasks_by_id:
            raise MissingReferenceError("successor", successor_id)

        graph = DependencyGraph(self.store.list_dependencies(), task_ids=tasks_by_id)
        if graph.find(predecessor_id, successor_id) is not None:
            raise ValidationError("successor_id", "dependency already exists")
        if graph.would_create_cycle(predecessor_id, successor_id):
            raise CycleError("successor_id", f"{successor_id} already precedes {predecessor_id}")

        dep = Dependency(
            predecessor_id=predecessor_id, successor_id=successor_id, type=dep_type, lag_days=lag,
        )
        self.store.insert_dependency(dep)
        logger.info("created dependency %s -> %s (%s)", predecessor_id, successor_id, dep.label())
        return dep

    def delete_dependency(self, dependency_id: str) -> None:
        if not any(d.id == dependency_id for d in self.store.list_dependencies()):
            raise MissingReferenceError("dependency", dependency_id)
        self.store.delete_dependency(dependency_id)
        logger.info("deleted dependency %s", dependency_id)

    # ── view ─────────────────────────────────────────────────────

    def refresh(
        self,
        expanded: set[str] | frozenset[str],
        zoom_mode: ZoomMode,
        today: date | None = None,
    ) -> ScheduleView:
        """Re-fetch everything from the store and recompute the view."""
        return build_schedule_view(
            self.store.list_tasks(),
            self.store.list_dependencies(),
            expanded,
            zoom_mode,
            weighting=self.weighting,
            today=today,
            settings=self.settings,
        )
