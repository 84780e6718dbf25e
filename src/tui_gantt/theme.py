"""YAML-based centralized color system for TUI Gantt.

Loads colors from default_theme.yaml and optionally merges
project-level overrides from {project_dir}/.tui-gantt/theme.yaml.
"""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path
from typing import NamedTuple

import yaml

from tui_gantt.config import CONFIG_DIR, _deep_merge
from tui_gantt.models import TaskKind

logger = logging.getLogger(__name__)

THEME_FILE = "theme.yaml"


class ColorPair(NamedTuple):
    """A pair of colors for dark and light themes."""

    dark: str
    light: str

    def resolve(self, is_dark: bool) -> str:
        return self.dark if is_dark else self.light


# ── Module-level variables (populated by _apply) ──────────────────

KIND_COLORS: dict[TaskKind, ColorPair]

GANTT_HEADER: ColorPair
GANTT_TODAY_MARKER: ColorPair
GANTT_DEPENDENCY_ARROW: ColorPair
GANTT_MILESTONE: ColorPair
GANTT_BAR_PHASE: ColorPair
GANTT_BAR_DONE: ColorPair
GANTT_BAR_IN_PROGRESS: ColorPair
GANTT_BAR_TODO: ColorPair
GANTT_BASE_BG: ColorPair
GANTT_BAND_BG: ColorPair
GANTT_HIGHLIGHT_BG: ColorPair
GANTT_WEEKEND_BG: ColorPair

PROGRESS_THRESHOLDS: list[tuple[int, ColorPair]]

OVERDUE_TITLE: ColorPair
STATUSBAR_DEMO: ColorPair
STATUSBAR_WARNING: ColorPair
WARNING_ICON: ColorPair


# ── Internal helpers ──────────────────────────────────────────────

def _load_yaml(path: Path) -> dict:
    """Load a YAML file and return a dict (empty dict on error)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        logger.warning("could not read theme file %s", path)
        return {}


def _pair(d: dict) -> ColorPair:
    """Convert a {dark: ..., light: ...} dict to a ColorPair."""
    return ColorPair(str(d.get("dark", "white")), str(d.get("light", "white")))


def _apply(data: dict) -> None:
    """Map parsed YAML data onto module-level constants."""
    mod = sys.modules[__name__]

    # ── Kind ──
    kind = data.get("kind", {})
    mod.KIND_COLORS = {k: _pair(kind.get(k.value, {})) for k in TaskKind}

    # ── Gantt ──
    gantt = data.get("gantt", {})
    mod.GANTT_HEADER = _pair(gantt.get("header", {}))
    mod.GANTT_TODAY_MARKER = _pair(gantt.get("today_marker", {}))
    mod.GANTT_DEPENDENCY_ARROW = _pair(gantt.get("dependency_arrow", {}))
    mod.GANTT_MILESTONE = _pair(gantt.get("milestone", {}))
    mod.GANTT_BAR_PHASE = _pair(gantt.get("bar_phase", {}))
    mod.GANTT_BAR_DONE = _pair(gantt.get("bar_done", {}))
    mod.GANTT_BAR_IN_PROGRESS = _pair(gantt.get("bar_in_progress", {}))
    mod.GANTT_BAR_TODO = _pair(gantt.get("bar_todo", {}))
    mod.GANTT_BASE_BG = _pair(gantt.get("base_bg", {}))
    mod.GANTT_BAND_BG = _pair(gantt.get("band_bg", {}))
    mod.GANTT_HIGHLIGHT_BG = _pair(gantt.get("highlight_bg", {}))
    mod.GANTT_WEEKEND_BG = _pair(gantt.get("weekend_bg", {"dark": "#2a1a1a", "light": "#e8d8d8"}))

    # ── Progress ──
    thresholds: list[tuple[int, ColorPair]] = []
    for entry in data.get("progress", []):
        if isinstance(entry, dict):
            thresholds.append((int(entry.get("min", 0)), _pair(entry)))
    thresholds.sort(key=lambda t: t[0])
    mod.PROGRESS_THRESHOLDS = thresholds

    # ── UI ──
    ui = data.get("ui", {})
    mod.OVERDUE_TITLE = _pair(ui.get("overdue_title", {}))
    mod.STATUSBAR_DEMO = _pair(ui.get("statusbar_demo", {}))
    mod.STATUSBAR_WARNING = _pair(ui.get("statusbar_warning", {}))
    mod.WARNING_ICON = _pair(ui.get("warning_icon", {}))


# ── Public API ────────────────────────────────────────────────────

def progress_color(percent: int) -> ColorPair:
    """Color for a rolled-up progress value (highest threshold <= percent)."""
    chosen = ColorPair("white", "black")
    for minimum, pair in PROGRESS_THRESHOLDS:
        if percent >= minimum:
            chosen = pair
    return chosen


def bar_color(percent: int, is_phase: bool) -> ColorPair:
    if is_phase:
        return GANTT_BAR_PHASE
    if percent >= 100:
        return GANTT_BAR_DONE
    if percent > 0:
        return GANTT_BAR_IN_PROGRESS
    return GANTT_BAR_TODO


def init_theme(project_dir: Path) -> Path:
    """Copy default_theme.yaml → {project_dir}/.tui-gantt/theme.yaml.

    Raises FileExistsError if the destination already exists.
    """
    dest = project_dir / CONFIG_DIR / THEME_FILE
    if dest.exists():
        raise FileExistsError(str(dest))
    dest.parent.mkdir(parents=True, exist_ok=True)
    src = Path(__file__).parent / "default_theme.yaml"
    shutil.copy2(src, dest)
    return dest


def load_theme(project_dir: Path | None = None) -> None:
    """Load the default theme and optionally merge project overrides."""
    default_path = Path(__file__).parent / "default_theme.yaml"
    data = _load_yaml(default_path)

    if project_dir is not None:
        override_path = project_dir / CONFIG_DIR / THEME_FILE
        if override_path.is_file():
            override = _load_yaml(override_path)
            if override:
                data = _deep_merge(data, override)

    _apply(data)


# Apply default theme on module import
load_theme()


def is_dark(node) -> bool:
    """Whether the running app shows a dark Textual theme; dark before any app is active."""
    try:
        return node.app.current_theme.dark
    except (AttributeError, RuntimeError):
        return True
