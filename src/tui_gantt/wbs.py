"""WBS tree building and expansion-aware flattening."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from tui_gantt.models import StaleReference, Task

logger = logging.getLogger(__name__)


def wbs_sort_key(code: str) -> tuple[int, ...]:
    """Numeric sort key for a dotted WBS code ('1.10' sorts after '1.2')."""
    parts: list[int] = []
    for part in code.split("."):
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(0)
    return tuple(parts)


def _sibling_key(task: Task) -> tuple:
    return (task.order, wbs_sort_key(task.wbs_code), task.id)


@dataclass
class TreeNode:
    """A task with the list of children it exclusively owns."""

    task: Task
    children: list[TreeNode] = field(default_factory=list)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def walk(self, depth: int = 0) -> Iterator[tuple[TreeNode, int]]:
        """Yield this node and every descendant depth-first with its depth."""
        yield self, depth
        for child in self.children:
            yield from child.walk(depth + 1)


@dataclass
class WBSTree:
    """Result of build_tree: root nodes, id lookup and read-time warnings."""

    roots: list[TreeNode] = field(default_factory=list)
    nodes: dict[str, TreeNode] = field(default_factory=dict)
    warnings: list[StaleReference] = field(default_factory=list)

    def walk(self) -> Iterator[tuple[TreeNode, int]]:
        for root in self.roots:
            yield from root.walk()

    def levels(self) -> dict[str, int]:
        return {node.task.id: depth for node, depth in self.walk()}


@dataclass(frozen=True)
class Row:
    """One visible line of the flattened WBS."""

    task: Task
    level: int
    index: int
    has_children: bool = False
    expanded: bool = False

    @property
    def task_id(self) -> str:
        return self.task.id


def _cut_parent_cycles(
    parent_of: dict[str, str | None],
    by_id: dict[str, Task],
    warnings: list[StaleReference],
) -> None:
    """Break existing parent cycles in place.

    In each cycle the member with the lowest sibling key loses its parent
    pointer and becomes a root.
    """
    state: dict[str, int] = {}  # 1 = on current path, 2 = finished
    for start in sorted(parent_of, key=lambda tid: _sibling_key(by_id[tid])):
        path: list[str] = []
        node: str | None = start
        while node is not None and node not in state:
            state[node] = 1
            path.append(node)
            node = parent_of[node]
        if node is not None and state[node] == 1:
            cycle = path[path.index(node):]
            cut = min(cycle, key=lambda tid: _sibling_key(by_id[tid]))
            warnings.append(StaleReference(
                kind="cycle",
                record_id=cut,
                missing_id=parent_of[cut] or "",
                message=f"parent cycle through {len(cycle)} task(s); treated as root",
            ))
            logger.debug("breaking parent cycle at %s (%d members)", cut, len(cycle))
            parent_of[cut] = None
        for visited in path:
            state[visited] = 2


def build_tree(tasks: Iterable[Task]) -> WBSTree:
    """Convert a flat, unordered task list into a parent/child hierarchy.

    A task whose parent id does not resolve is kept as a root and reported
    as a stale reference; it is never dropped.
    """
    tree = WBSTree()
    by_id: dict[str, Task] = {}
    for task in tasks:
        if task.id in by_id:
            tree.warnings.append(StaleReference(
                kind="duplicate", record_id=task.id, missing_id="",
                message="duplicate task id; later record ignored",
            ))
            continue
        by_id[task.id] = task

    parent_of: dict[str, str | None] = {}
    for task in by_id.values():
        pid = task.parent_id
        if pid and pid not in by_id:
            tree.warnings.append(StaleReference(
                kind="parent", record_id=task.id, missing_id=pid,
                message=f"parent {pid} not found; treated as root",
            ))
            logger.debug("task %s references missing parent %s", task.id, pid)
            pid = None
        parent_of[task.id] = pid or None

    _cut_parent_cycles(parent_of, by_id, tree.warnings)

    tree.nodes = {tid: TreeNode(task) for tid, task in by_id.items()}
    for tid, node in tree.nodes.items():
        pid = parent_of[tid]
        if pid is None:
            tree.roots.append(node)
        else:
            tree.nodes[pid].children.append(node)

    tree.roots.sort(key=lambda n: _sibling_key(n.task))
    for node in tree.nodes.values():
        node.children.sort(key=lambda n: _sibling_key(n.task))
    return tree


def flatten_tree(tree: WBSTree, expanded: set[str] | frozenset[str]) -> list[Row]:
    """Depth-first, sibling-ordered rows; children only under expanded parents."""
    rows: list[Row] = []

    def visit(node: TreeNode, level: int) -> None:
        is_expanded = node.task.id in expanded
        rows.append(Row(
            task=node.task.with_level(level),
            level=level,
            index=len(rows),
            has_children=node.has_children,
            expanded=is_expanded and node.has_children,
        ))
        if is_expanded:
            for child in node.children:
                visit(child, level + 1)

    for root in tree.roots:
        visit(root, 0)
    return rows


def build_flattened_view(tasks: Iterable[Task], expanded: set[str] | frozenset[str]) -> list[Row]:
    """Build the display rows for *tasks* given the caller-owned expansion set."""
    return flatten_tree(build_tree(tasks), expanded)


def all_parent_ids(tasks: Iterable[Task]) -> set[str]:
    """Ids of every task that has at least one child ("expand all")."""
    tree = build_tree(tasks)
    return {tid for tid, node in tree.nodes.items() if node.has_children}


def ancestors_of(task_id: str, tasks: Iterable[Task]) -> list[str]:
    """Parent chain of *task_id*, nearest first. Stops on unknown ids or loops."""
    parent_of = {t.id: t.parent_id for t in tasks}
    result: list[str] = []
    seen = {task_id}
    current = parent_of.get(task_id)
    while current and current in parent_of and current not in seen:
        result.append(current)
        seen.add(current)
        current = parent_of.get(current)
    return result


def descendants_of(task_id: str, tasks: Iterable[Task]) -> set[str]:
    """Every task below *task_id* in the parent hierarchy."""
    children: dict[str, list[str]] = {}
    for t in tasks:
        if t.parent_id:
            children.setdefault(t.parent_id, []).append(t.id)
    result: set[str] = set()
    stack = list(children.get(task_id, []))
    while stack:
        current = stack.pop()
        if current in result or current == task_id:
            continue
        result.add(current)
        stack.extend(children.get(current, []))
    return result
