"""Demo schedule for --demo mode.

Provides:
- seed_demo_schedule(scheduler, today) → writes a small construction schedule
  through any Scheduler
- build_demo_store(today) → the same schedule in an InMemoryStore

Dates are shifted so that *today* falls inside the structure phase.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from tui_gantt.models import DependencyType, TaskKind
from tui_gantt.scheduler import Scheduler
from tui_gantt.store import InMemoryStore

DEMO_PROJECT_NAME = "Residencial Vila Nova"

# (key, parent key, name, kind, start offset, duration days, percent)
# Offsets are days relative to *today*.
_DEMO_TASKS: list[tuple[str, str | None, str, TaskKind, int, int, int]] = [
    ("prelim", None, "Preliminary works", TaskKind.PHASE, -40, 18, 0),
    ("permits", "prelim", "Permits and approvals", TaskKind.TASK, -40, 10, 100),
    ("site", "prelim", "Site clearing", TaskKind.TASK, -30, 8, 100),
    ("found", None, "Foundations", TaskKind.PHASE, -22, 20, 0),
    ("excav", "found", "Excavation", TaskKind.TASK, -22, 6, 100),
    ("footings", "found", "Footings", TaskKind.TASK, -16, 8, 80),
    ("slab", "found", "Ground slab", TaskKind.TASK, -8, 6, 40),
    ("struct", None, "Structure", TaskKind.PHASE, -4, 35, 0),
    ("columns", "struct", "Columns and beams", TaskKind.TASK, -4, 14, 20),
    ("floor1", "struct", "First floor slab", TaskKind.TASK, 10, 10, 0),
    ("roof", "struct", "Roof structure", TaskKind.TASK, 20, 11, 0),
    ("topout", None, "Structure topped out", TaskKind.MILESTONE, 31, 0, 0),
    ("finish", None, "Finishing", TaskKind.PHASE, 32, 40, 0),
    ("masonry", "finish", "Masonry", TaskKind.TASK, 32, 15, 0),
    ("mep", "finish", "Electrical and plumbing", TaskKind.TASK, 40, 20, 0),
    ("paint", "finish", "Painting", TaskKind.TASK, 60, 12, 0),
    ("handover", None, "Handover", TaskKind.MILESTONE, 74, 0, 0),
]

# (predecessor key, successor key, type, lag days)
_DEMO_LINKS: list[tuple[str, str, DependencyType, int]] = [
    ("permits", "site", DependencyType.FS, 0),
    ("site", "excav", DependencyType.FS, 0),
    ("excav", "footings", DependencyType.FS, 0),
    ("footings", "slab", DependencyType.FS, 0),
    ("slab", "columns", DependencyType.FS, -2),
    ("columns", "floor1", DependencyType.FS, 0),
    ("floor1", "roof", DependencyType.FS, 0),
    ("roof", "topout", DependencyType.FS, 0),
    ("topout", "masonry", DependencyType.FS, 1),
    ("masonry", "mep", DependencyType.SS, 8),
    ("mep", "paint", DependencyType.FF, 12),
    ("paint", "handover", DependencyType.FS, 2),
]


def seed_demo_schedule(scheduler: Scheduler, today: date | None = None) -> dict[str, str]:
    """Create the demo tasks and links through *scheduler*.

    Returns the demo key → task id mapping.
    """
    anchor = datetime.combine(today or date.today(), datetime.min.time())
    ids: dict[str, str] = {}
    for key, parent_key, name, kind, offset, days, percent in _DEMO_TASKS:
        start = anchor + timedelta(days=offset)
        task = scheduler.create_task(
            name,
            kind,
            start,
            start + timedelta(days=days),
            parent_id=ids[parent_key] if parent_key else None,
            percent_complete=percent,
        )
        ids[key] = task.id

    for pred, succ, dep_type, lag in _DEMO_LINKS:
        scheduler.create_dependency(ids[pred], ids[succ], dep_type, lag)
    return ids


def build_demo_store(today: date | None = None) -> InMemoryStore:
    """Return an in-memory store holding the demo schedule."""
    store = InMemoryStore()
    seed_demo_schedule(Scheduler(store), today)
    return store
