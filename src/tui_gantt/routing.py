"""Orthogonal connector routing between dependent bars."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from tui_gantt.config import LayoutSettings
from tui_gantt.dependencies import DependencyGraph
from tui_gantt.models import Dependency
from tui_gantt.timeline import BarGeometry
from tui_gantt.wbs import Row

Point = tuple[float, float]


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


@dataclass(frozen=True)
class ConnectorPath:
    """Three-segment path from a predecessor's bar end to a successor's bar start."""

    dependency: Dependency
    predecessor_row: int
    successor_row: int
    points: tuple[Point, ...]
    arrowhead: tuple[Point, Point, Point]

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    @property
    def corner_x(self) -> float:
        return self.points[1][0]

    def svg_path(self) -> str:
        """SVG path data, e.g. ``M 10 18 L 22 18 L 22 54 L 40 54``."""
        head, *rest = self.points
        parts = [f"M {_fmt(head[0])} {_fmt(head[1])}"]
        parts.extend(f"L {_fmt(x)} {_fmt(y)}" for x, y in rest)
        return " ".join(parts)

    def svg_arrow(self) -> str:
        """SVG polygon points of the arrowhead."""
        return " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in self.arrowhead)


def route_graph(
    graph: DependencyGraph,
    bars: Mapping[str, BarGeometry],
    settings: LayoutSettings | None = None,
) -> list[ConnectorPath]:
    """Route every resolvable edge of *graph* whose bars are both visible."""
    settings = settings or LayoutSettings()
    rh = settings.row_height
    paths: list[ConnectorPath] = []
    for resolved in graph.resolve():
        dep = resolved.dependency
        pred_bar = bars.get(dep.predecessor_id)
        succ_bar = bars.get(dep.successor_id)
        if pred_bar is None or succ_bar is None:
            continue
        if not (pred_bar.visible and succ_bar.visible):
            continue

        from_x = pred_bar.right + settings.connector_offset
        from_y = resolved.predecessor_row * rh + rh / 2
        to_x = succ_bar.left - settings.connector_offset
        to_y = resolved.successor_row * rh + rh / 2
        corner_x = from_x + settings.connector_gap

        points: tuple[Point, ...] = (
            (from_x, from_y),
            (corner_x, from_y),
            (corner_x, to_y),
            (to_x, to_y),
        )
        arrowhead = (
            (to_x, to_y),
            (to_x - settings.arrow_length, to_y - settings.arrow_half_width),
            (to_x - settings.arrow_length, to_y + settings.arrow_half_width),
        )
        paths.append(ConnectorPath(
            dependency=dep,
            predecessor_row=resolved.predecessor_row,
            successor_row=resolved.successor_row,
            points=points,
            arrowhead=arrowhead,
        ))
    return paths


def route_dependencies(
    dependencies: Iterable[Dependency],
    rows: Sequence[Row],
    bars: Mapping[str, BarGeometry],
    settings: LayoutSettings | None = None,
    task_ids: Iterable[str] | None = None,
) -> list[ConnectorPath]:
    """Connector paths for *dependencies* over the visible *rows*.

    Routing is the same for every dependency type. Edges whose endpoints
    are missing, collapsed or undated are left out. Pass every known
    *task_ids* so that collapsed endpoints are not reported as missing.
    """
    graph = DependencyGraph(dependencies, rows, task_ids=task_ids)
    return route_graph(graph, bars, settings)
