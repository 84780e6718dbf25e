"""Tests for Command Palette provider."""

from __future__ import annotations

from datetime import date

import pytest

from tui_gantt.commands import COMMANDS, CommandDef, GanttCommandProvider


# ── COMMANDS list integrity ──


def test_commands_not_empty():
    assert len(COMMANDS) > 0


def test_commands_all_have_required_fields():
    for cmd in COMMANDS:
        assert isinstance(cmd, CommandDef)
        assert cmd.display, f"Missing display for action={cmd.action}"
        assert cmd.action, f"Missing action for display={cmd.display}"


def test_commands_unique_actions():
    actions = [cmd.action for cmd in COMMANDS]
    assert len(actions) == len(set(actions)), "Duplicate actions found"


def test_commands_categories_present():
    categories = {cmd.category for cmd in COMMANDS}
    assert categories == {"Schedule", "View", "Gantt"}


def test_commands_map_to_app_actions():
    from tui_gantt.app import GanttApp

    for cmd in COMMANDS:
        assert callable(getattr(GanttApp, f"action_{cmd.action}", None)), cmd.action


# ── Matching ──


def test_fuzzy_match_in_order():
    assert GanttCommandProvider._fuzzy_match("gdz", "gantt: day zoom")
    assert not GanttCommandProvider._fuzzy_match("zg", "gantt")


def test_score_ordering():
    score = GanttCommandProvider._score
    assert score("quit", "quit") == 1.0
    assert score("add", "add task") == 0.9
    assert score("task", "add task") == 0.8
    assert score("adt", "add task") == 0.7
    assert score("", "anything") == 0.5


# ── Provider registration ──


def test_provider_registered():
    from tui_gantt.app import GanttApp

    assert GanttCommandProvider in GanttApp.COMMANDS


# ── Integration: Ctrl+P opens Command Palette ──


PAUSE = 0.15


@pytest.mark.asyncio
async def test_command_palette_opens():
    """Ctrl+P should open the command palette."""
    from textual.command import CommandPalette

    from tui_gantt.app import GanttApp
    from tui_gantt.demo_data import build_demo_store

    today = date(2024, 6, 12)
    app = GanttApp(store=build_demo_store(today), demo_mode=True, today=today)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        await pilot.press("ctrl+p")
        await pilot.pause(delay=PAUSE)
        assert any(
            isinstance(screen, CommandPalette) for screen in app.screen_stack
        ), "Command Palette did not open"
