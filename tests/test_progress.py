"""Tests for progress roll-up and automatic status."""

from datetime import datetime

import pytest

from tui_gantt.models import Dependency, DependencyType, Task, TaskKind, Weighting
from tui_gantt.progress import (
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    STATUS_OVERDUE,
    STATUS_STARTED,
    STATUS_WAITING,
    aggregate_progress,
    auto_status,
)


def _phase(task_id, parent=None):
    return Task(name=task_id, id=task_id, parent_id=parent, kind=TaskKind.PHASE)


def _leaf(task_id, parent, percent, days=1, order=0):
    return Task(
        name=task_id,
        id=task_id,
        parent_id=parent,
        percent_complete=percent,
        planned_start=datetime(2024, 1, 1),
        planned_end=datetime(2024, 1, 1 + days),
        order=order,
    )


class TestAggregateProgress:
    def test_equal_weighting_reference(self):
        tasks = [_phase("p"), _leaf("a", "p", 80), _leaf("b", "p", 40), _leaf("c", "p", 20)]
        result = aggregate_progress(tasks)
        assert result["p"] == 47
        assert result["a"] == 80

    def test_childless_phase_is_zero(self):
        phase = Task(name="p", id="p", kind=TaskKind.PHASE, percent_complete=90)
        assert aggregate_progress([phase]) == {"p": 0}

    def test_leaf_keeps_own_value(self):
        assert aggregate_progress([Task(name="t", id="t", percent_complete=35)]) == {"t": 35}

    def test_recursive_rollup_uses_displayed_values(self):
        tasks = [
            _phase("root"),
            _phase("sub", parent="root"),
            _leaf("x", "sub", 100),
            _leaf("y", "sub", 0),
            _leaf("z", "root", 20),
        ]
        result = aggregate_progress(tasks)
        assert result["sub"] == 50
        assert result["root"] == 35

    def test_half_rounds_up(self):
        tasks = [_phase("p"), _leaf("a", "p", 0), _leaf("b", "p", 1)]
        assert aggregate_progress(tasks)["p"] == 1

    def test_stored_phase_value_is_not_modified(self):
        phase = Task(name="p", id="p", kind=TaskKind.PHASE, percent_complete=12)
        tasks = [phase, _leaf("a", "p", 100)]
        aggregate_progress(tasks)
        assert phase.percent_complete == 12

    def test_duration_weighting(self):
        tasks = [_phase("p"), _leaf("a", "p", 100, days=3), _leaf("b", "p", 0, days=1)]
        assert aggregate_progress(tasks, Weighting.DURATION)["p"] == 75
        assert aggregate_progress(tasks, Weighting.EQUAL)["p"] == 50

    def test_orphans_are_included(self):
        result = aggregate_progress([_leaf("a", "missing", 60)])
        assert result == {"a": 60}


class TestAutoStatus:
    @pytest.fixture
    def task(self):
        return Task(
            name="t",
            id="t",
            planned_start=datetime(2024, 1, 1),
            planned_end=datetime(2024, 1, 11),
        )

    def test_reported_progress_wins(self, task):
        assert auto_status(Task(name="x", percent_complete=100), {}, [], datetime(2024, 1, 5)).label == STATUS_DONE
        assert auto_status(Task(name="x", percent_complete=60), {}, [], datetime(2024, 1, 5)).label == STATUS_IN_PROGRESS
        assert auto_status(Task(name="x", percent_complete=10), {}, [], datetime(2024, 1, 5)).label == STATUS_STARTED

    def test_not_started_before_window(self, task):
        status = auto_status(task, {}, [], datetime(2023, 12, 1))
        assert status.progress == 0
        assert status.label == STATUS_NOT_STARTED

    def test_proportional_inside_window(self, task):
        status = auto_status(task, {}, [], datetime(2024, 1, 6))
        assert status.progress == 50
        assert status.label == STATUS_IN_PROGRESS

    def test_overdue_after_end(self, task):
        status = auto_status(task, {}, [], datetime(2024, 2, 1))
        assert status.label == STATUS_OVERDUE

    def test_waits_for_unfinished_fs_predecessor(self, task):
        pred = Task(name="p", id="p", percent_complete=80)
        deps = [Dependency("p", "t", type=DependencyType.FS)]
        status = auto_status(task, {"p": pred, "t": task}, deps, datetime(2024, 1, 6))
        assert status.label == STATUS_WAITING

    def test_ss_predecessor_only_needs_a_start(self, task):
        pred = Task(name="p", id="p", percent_complete=5)
        deps = [Dependency("p", "t", type=DependencyType.SS)]
        status = auto_status(task, {"p": pred, "t": task}, deps, datetime(2024, 1, 6))
        assert status.label == STATUS_IN_PROGRESS
