"""Tests for WBS tree building and flattening."""

import pytest

from tui_gantt.models import Task, TaskKind
from tui_gantt.wbs import (
    all_parent_ids,
    ancestors_of,
    build_flattened_view,
    build_tree,
    descendants_of,
    wbs_sort_key,
)


def _task(task_id, parent=None, order=1, code="", kind=TaskKind.TASK):
    return Task(name=task_id.upper(), id=task_id, parent_id=parent, order=order, wbs_code=code, kind=kind)


@pytest.fixture
def tasks():
    # Deliberately unordered input
    return [
        _task("b1", parent="b", order=1, code="2.1"),
        _task("a2", parent="a", order=2, code="1.2"),
        _task("b", order=2, code="2", kind=TaskKind.PHASE),
        _task("a1", parent="a", order=1, code="1.1"),
        _task("a", order=1, code="1", kind=TaskKind.PHASE),
        _task("a1x", parent="a1", order=1, code="1.1.1"),
    ]


class TestBuildTree:
    def test_roots_and_children(self, tasks):
        tree = build_tree(tasks)
        assert [n.task.id for n in tree.roots] == ["a", "b"]
        assert [n.task.id for n in tree.nodes["a"].children] == ["a1", "a2"]
        assert tree.nodes["a1"].has_children
        assert not tree.nodes["a2"].has_children
        assert tree.warnings == []

    def test_each_child_owned_once(self, tasks):
        tree = build_tree(tasks)
        owned = [c.task.id for n in tree.nodes.values() for c in n.children]
        owned += [r.task.id for r in tree.roots]
        assert sorted(owned) == sorted(t.id for t in tasks)

    def test_missing_parent_becomes_root(self):
        tree = build_tree([_task("x", parent="ghost")])
        assert [n.task.id for n in tree.roots] == ["x"]
        assert len(tree.warnings) == 1
        assert tree.warnings[0].kind == "parent"
        assert tree.warnings[0].missing_id == "ghost"

    def test_parent_cycle_is_broken(self):
        tasks = [_task("p", parent="q", order=1), _task("q", parent="p", order=2)]
        tree = build_tree(tasks)
        assert [n.task.id for n in tree.roots] == ["p"]
        assert [n.task.id for n in tree.nodes["p"].children] == ["q"]
        assert [w.kind for w in tree.warnings] == ["cycle"]

    def test_self_parent_is_broken(self):
        tree = build_tree([_task("s", parent="s")])
        assert [n.task.id for n in tree.roots] == ["s"]
        assert tree.warnings[0].kind == "cycle"

    def test_duplicate_ids_keep_first(self):
        first = _task("d")
        second = Task(name="other", id="d")
        tree = build_tree([first, second])
        assert tree.nodes["d"].task is first
        assert tree.warnings[0].kind == "duplicate"

    def test_levels(self, tasks):
        levels = build_tree(tasks).levels()
        assert levels == {"a": 0, "a1": 1, "a1x": 2, "a2": 1, "b": 0, "b1": 1}


class TestFlattenedView:
    def test_collapsed_shows_roots_only(self, tasks):
        rows = build_flattened_view(tasks, set())
        assert [r.task.id for r in rows] == ["a", "b"]
        assert all(r.has_children for r in rows)
        assert not any(r.expanded for r in rows)

    def test_expanded_depth_first(self, tasks):
        rows = build_flattened_view(tasks, {"a", "a1", "b"})
        assert [r.task.id for r in rows] == ["a", "a1", "a1x", "a2", "b", "b1"]
        assert [r.level for r in rows] == [0, 1, 2, 1, 0, 1]
        assert [r.index for r in rows] == list(range(6))

    def test_hidden_descendants_need_every_ancestor_expanded(self, tasks):
        rows = build_flattened_view(tasks, {"a1"})
        assert [r.task.id for r in rows] == ["a", "b"]

    def test_level_is_annotated_on_task(self, tasks):
        rows = build_flattened_view(tasks, {"a"})
        assert rows[1].task.level == 1

    def test_expansion_set_not_mutated(self, tasks):
        expanded = frozenset({"a"})
        build_flattened_view(tasks, expanded)
        assert expanded == frozenset({"a"})

    @pytest.mark.parametrize("expanded", [set(), {"a"}, {"a", "a1", "b"}, {"zzz"}])
    def test_every_root_exactly_once(self, tasks, expanded):
        rows = build_flattened_view(tasks, expanded)
        root_ids = [r.task.id for r in rows if r.level == 0]
        assert root_ids == ["a", "b"]

    @pytest.mark.parametrize("expanded", [set(), {"a"}, {"a1"}, {"a", "a1"}, {"a", "b"}])
    def test_row_count_bounded_by_visible_tasks(self, tasks, expanded):
        by_id = {t.id: t for t in tasks}

        def visible(task_id):
            parent = by_id[task_id].parent_id
            while parent:
                if parent not in expanded:
                    return False
                parent = by_id[parent].parent_id
            return True

        rows = build_flattened_view(tasks, expanded)
        assert len(rows) <= sum(1 for t in tasks if visible(t.id))

    def test_orphan_is_listed_not_dropped(self, tasks):
        rows = build_flattened_view(tasks + [_task("orphan", parent="nope", order=3)], set())
        assert "orphan" in [r.task.id for r in rows]

    def test_sibling_order_then_code(self):
        tasks = [_task("x", order=1, code="1.10"), _task("y", order=1, code="1.2")]
        rows = build_flattened_view(tasks, set())
        assert [r.task.id for r in rows] == ["y", "x"]


class TestHelpers:
    def test_wbs_sort_key(self):
        assert wbs_sort_key("1.10") > wbs_sort_key("1.2")
        assert wbs_sort_key("") == (0,)

    def test_all_parent_ids(self, tasks):
        assert all_parent_ids(tasks) == {"a", "a1", "b"}

    def test_ancestors_of(self, tasks):
        assert ancestors_of("a1x", tasks) == ["a1", "a"]
        assert ancestors_of("a", tasks) == []

    def test_ancestors_of_stops_on_loop(self):
        tasks = [_task("p", parent="q"), _task("q", parent="p")]
        assert ancestors_of("p", tasks) == ["q"]

    def test_descendants_of(self, tasks):
        assert descendants_of("a", tasks) == {"a1", "a2", "a1x"}
        assert descendants_of("b1", tasks) == set()
