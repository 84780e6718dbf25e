"""Tests for the dependency graph and constraint checks."""

from datetime import datetime

import pytest

from tui_gantt.dependencies import DependencyGraph, check_constraints
from tui_gantt.models import Dependency, DependencyType, Task
from tui_gantt.wbs import build_flattened_view


def _task(task_id, start=None, end=None, parent=None, order=0, code=""):
    return Task(
        name=task_id,
        id=task_id,
        parent_id=parent,
        order=order,
        wbs_code=code,
        planned_start=datetime.fromisoformat(start) if start else None,
        planned_end=datetime.fromisoformat(end) if end else None,
    )


@pytest.fixture
def tasks():
    return [
        _task("a", order=1, code="1"),
        _task("b", order=2, code="2"),
        _task("c", order=3, code="3"),
        _task("c1", parent="c", order=1, code="3.1"),
    ]


@pytest.fixture
def deps():
    return [
        Dependency("a", "b", id="ab"),
        Dependency("b", "c", id="bc", type=DependencyType.SS, lag_days=2),
        Dependency("a", "c1", id="ac1"),
    ]


class TestResolve:
    def test_rows_resolved(self, tasks, deps):
        rows = build_flattened_view(tasks, {"c"})
        graph = DependencyGraph(deps, rows)
        resolved = {r.dependency.id: (r.predecessor_row, r.successor_row) for r in graph.resolve()}
        assert resolved == {"ab": (0, 1), "bc": (1, 2), "ac1": (0, 3)}
        assert graph.warnings == []

    def test_collapsed_endpoint_skipped_silently(self, tasks, deps):
        rows = build_flattened_view(tasks, set())
        graph = DependencyGraph(deps, rows, task_ids=[t.id for t in tasks])
        assert [r.dependency.id for r in graph.resolve()] == ["ab", "bc"]
        assert graph.warnings == []

    def test_unknown_endpoint_is_stale(self, tasks, deps):
        rows = build_flattened_view(tasks, {"c"})
        graph = DependencyGraph(deps + [Dependency("ghost", "a", id="gx")], rows)
        ids = [r.dependency.id for r in graph.resolve()]
        assert "gx" not in ids
        assert len(graph.warnings) == 1
        assert graph.warnings[0].missing_id == "ghost"
        assert graph.warnings[0].record_id == "gx"


class TestLookups:
    def test_predecessors_and_successors(self, deps):
        graph = DependencyGraph(deps)
        assert graph.predecessors_of("c") == ["b"]
        assert sorted(graph.successors_of("a")) == ["b", "c1"]
        assert graph.successors_of("c1") == []

    def test_referencing(self, deps):
        graph = DependencyGraph(deps)
        assert sorted(d.id for d in graph.referencing("b")) == ["ab", "bc"]

    def test_find(self, deps):
        graph = DependencyGraph(deps)
        assert graph.find("a", "b").id == "ab"
        assert graph.find("b", "a") is None

    def test_would_create_cycle(self, deps):
        graph = DependencyGraph(deps)
        assert graph.would_create_cycle("c", "a")
        assert graph.would_create_cycle("a", "a")
        assert not graph.would_create_cycle("a", "c")
        assert not graph.would_create_cycle("c1", "b")

    def test_predecessor_labels(self, tasks, deps):
        graph = DependencyGraph(deps)
        by_id = {t.id: t for t in tasks}
        assert graph.predecessor_labels("c", by_id) == ["2"]
        assert graph.predecessor_labels("a", by_id) == []


class TestCheckConstraints:
    def test_satisfied_fs(self):
        tasks = [_task("p", "2024-01-01", "2024-01-05"), _task("s", "2024-01-05", "2024-01-08")]
        assert check_constraints(tasks, [Dependency("p", "s")]) == []

    def test_violated_fs_with_lag(self):
        tasks = [_task("p", "2024-01-01", "2024-01-05"), _task("s", "2024-01-06", "2024-01-08")]
        violations = check_constraints(tasks, [Dependency("p", "s", lag_days=3)])
        assert len(violations) == 1
        assert violations[0].required == datetime(2024, 1, 8)
        assert violations[0].slip_days == 2

    def test_lead_time(self):
        tasks = [_task("p", "2024-01-01", "2024-01-05"), _task("s", "2024-01-03", "2024-01-08")]
        assert check_constraints(tasks, [Dependency("p", "s", lag_days=-2)]) == []

    @pytest.mark.parametrize("dep_type, ok_succ, bad_succ", [
        (DependencyType.SS, ("2024-01-02", "2024-01-03"), ("2023-12-31", "2024-01-03")),
        (DependencyType.FF, ("2024-01-01", "2024-01-05"), ("2024-01-01", "2024-01-04")),
        (DependencyType.SF, ("2023-12-20", "2024-01-02"), ("2023-12-20", "2023-12-31")),
    ])
    def test_types(self, dep_type, ok_succ, bad_succ):
        pred = _task("p", "2024-01-01", "2024-01-05")
        dep = Dependency("p", "s", type=dep_type)
        assert check_constraints([pred, _task("s", *ok_succ)], [dep]) == []
        assert len(check_constraints([pred, _task("s", *bad_succ)], [dep])) == 1

    def test_undated_and_unknown_ignored(self):
        tasks = [_task("p"), _task("s", "2024-01-01", "2024-01-02")]
        deps = [Dependency("p", "s"), Dependency("x", "s")]
        assert check_constraints(tasks, deps) == []

    def test_violation_str(self):
        tasks = [_task("p", "2024-01-01", "2024-01-05"), _task("s", "2024-01-02", "2024-01-08")]
        text = str(check_constraints(tasks, [Dependency("p", "s")])[0])
        assert "p -> s (FS)" in text
        assert "2024-01-05" in text
