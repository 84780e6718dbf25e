"""Project configuration management using tomlkit, settings using YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import yaml

from tui_gantt.errors import ValidationError
from tui_gantt.models import (
    DATE_FORMAT_PRESETS,
    DEFAULT_DATE_FORMAT,
    ProjectConfig,
    ViewConfig,
    Weighting,
    ZoomMode,
    parse_zoom_mode,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = ".tui-gantt"
CONFIG_FILE = "config.toml"
SETTINGS_FILE = "settings.yaml"
SCHEDULE_FILE = "schedule.yaml"


def _get_config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / CONFIG_FILE


def get_schedule_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / SCHEDULE_FILE


def load_config(project_dir: Path) -> ProjectConfig:
    """Load project configuration from .tui-gantt/config.toml."""
    config_path = _get_config_path(project_dir)
    config = ProjectConfig()

    if not config_path.exists():
        return config

    try:
        content = config_path.read_text(encoding="utf-8")
        doc = tomlkit.parse(content)
    except Exception:
        logger.warning("unreadable config %s; using defaults", config_path)
        return config

    # Parse [project] section
    project_section = doc.get("project", {})
    config.name = str(project_section.get("name", ""))
    raw_fmt = str(project_section.get("date_format", DEFAULT_DATE_FORMAT))
    config.date_format = raw_fmt if raw_fmt in DATE_FORMAT_PRESETS else DEFAULT_DATE_FORMAT

    # Parse [view] section
    view_section = doc.get("view", {})
    if isinstance(view_section, dict):
        config.view = _parse_view(view_section)

    return config


def _parse_view(data: dict) -> ViewConfig:
    """Parse the view section from TOML data."""
    view = ViewConfig()
    try:
        view.zoom_mode = parse_zoom_mode(data.get("zoom_mode", ZoomMode.WEEK.value))
    except ValidationError:
        view.zoom_mode = ZoomMode.WEEK
    try:
        view.weighting = Weighting(str(data.get("weighting", Weighting.EQUAL.value)))
    except ValueError:
        view.weighting = Weighting.EQUAL
    view.show_dependencies = bool(data.get("show_dependencies", True))

    expanded = data.get("expanded")
    if isinstance(expanded, list):
        view.expanded = {str(tid) for tid in expanded}
    return view


def save_config(project_dir: Path, config: ProjectConfig) -> None:
    """Save project configuration to .tui-gantt/config.toml."""
    config_path = _get_config_path(project_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    doc = tomlkit.document()

    # [project]
    project_table = tomlkit.table()
    project_table.add("name", config.name)
    project_table.add("date_format", config.date_format)
    doc.add("project", project_table)

    # [view]
    view = config.view
    view_table = tomlkit.table()
    view_table.add("zoom_mode", view.zoom_mode.value)
    view_table.add("weighting", view.weighting.value)
    view_table.add("show_dependencies", view.show_dependencies)
    if view.expanded is not None:
        view_table.add("expanded", sorted(view.expanded))
    doc.add("view", view_table)

    config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")


# ── Settings (YAML) ─────────────────────────────────────────────

def _load_yaml(path: Path) -> dict:
    """Load a YAML file and return a dict (empty dict on error)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        logger.warning("could not read settings file %s", path)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (returns a new dict)."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def load_settings(project_dir: Path | None = None) -> dict[str, Any]:
    """Load settings from default_settings.yaml + optional project override.

    1. Load ``default_settings.yaml`` bundled with the package.
    2. If *project_dir* is given and ``{project_dir}/.tui-gantt/settings.yaml``
       exists, deep-merge it on top of the defaults.
    3. Return the merged dict.
    """
    default_path = Path(__file__).parent / "default_settings.yaml"
    data = _load_yaml(default_path)

    if project_dir is not None:
        override_path = project_dir / CONFIG_DIR / SETTINGS_FILE
        if override_path.is_file():
            override = _load_yaml(override_path)
            if override:
                data = _deep_merge(data, override)

    return data


def _default_pixels_per_day() -> dict[ZoomMode, int]:
    return {ZoomMode.DAY: 30, ZoomMode.WEEK: 20, ZoomMode.MONTH: 8, ZoomMode.QUARTER: 4}


@dataclass(frozen=True)
class LayoutSettings:
    """Pixel constants used by the timeline layout and line router."""

    pixels_per_day: dict[ZoomMode, int] = field(default_factory=_default_pixels_per_day)
    row_height: int = 36
    bar_margin: int = 4
    milestone_size: int = 12
    connector_gap: int = 12
    connector_offset: int = 2
    arrow_length: int = 8
    arrow_half_width: int = 5
    empty_window_days: int = 90
    month_pad_before_days: int = 7
    month_pad_after_days: int = 14
    cell_px: dict[ZoomMode, int] = field(default_factory=lambda: {
        ZoomMode.DAY: 15, ZoomMode.WEEK: 20, ZoomMode.MONTH: 24, ZoomMode.QUARTER: 28,
    })

    def ppd(self, zoom_mode: ZoomMode) -> int:
        return self.pixels_per_day[zoom_mode]

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> LayoutSettings:
        """Build typed layout constants from a merged settings dict.

        Missing or invalid entries keep their defaults.
        """
        defaults = cls()
        layout = settings.get("layout", {})
        if not isinstance(layout, dict):
            return defaults

        def _int(key: str, default: int, minimum: int = 0) -> int:
            try:
                value = int(layout.get(key, default))
            except (TypeError, ValueError):
                return default
            return value if value >= minimum else default

        def _per_zoom(key: str, default: dict[ZoomMode, int]) -> dict[ZoomMode, int]:
            raw = layout.get(key, {})
            result = dict(default)
            if isinstance(raw, dict):
                for mode in ZoomMode:
                    try:
                        value = int(raw.get(mode.value, result[mode]))
                    except (TypeError, ValueError):
                        continue
                    if value > 0:
                        result[mode] = value
            return result

        return cls(
            pixels_per_day=_per_zoom("pixels_per_day", defaults.pixels_per_day),
            row_height=_int("row_height", defaults.row_height, 1),
            bar_margin=_int("bar_margin", defaults.bar_margin),
            milestone_size=_int("milestone_size", defaults.milestone_size, 1),
            connector_gap=_int("connector_gap", defaults.connector_gap),
            connector_offset=_int("connector_offset", defaults.connector_offset),
            arrow_length=_int("arrow_length", defaults.arrow_length),
            arrow_half_width=_int("arrow_half_width", defaults.arrow_half_width),
            empty_window_days=_int("empty_window_days", defaults.empty_window_days, 1),
            month_pad_before_days=_int("month_pad_before_days", defaults.month_pad_before_days),
            month_pad_after_days=_int("month_pad_after_days", defaults.month_pad_after_days),
            cell_px=_per_zoom("cell_px", defaults.cell_px),
        )
