"""Command Palette provider for TUI Gantt."""

from __future__ import annotations

from dataclasses import dataclass

from textual.command import Hit, Hits, Provider


@dataclass(frozen=True)
class CommandDef:
    """A single command entry for the palette."""

    display: str
    action: str
    help: str = ""
    category: str = ""


COMMANDS: list[CommandDef] = [
    # -- Schedule --
    CommandDef("Add Task", "add_child", "Add a task under the selected row (a)", "Schedule"),
    CommandDef("Add Phase", "add_root", "Add a top-level phase (A)", "Schedule"),
    CommandDef("Add Milestone", "add_milestone", "Add a milestone next to the selected row (m)", "Schedule"),
    CommandDef("Rename Task", "rename", "Rename the selected task (e)", "Schedule"),
    CommandDef("Set Progress", "set_percent", "Set percent complete (p)", "Schedule"),
    CommandDef("Link Predecessor", "link", "Add a dependency to the selected task (l)", "Schedule"),
    CommandDef("Delete Task", "delete_task", "Delete the selected task and its links (d)", "Schedule"),
    CommandDef("Move Earlier", "move_earlier", "Shift the selected bar one day earlier (Shift+Left)", "Schedule"),
    CommandDef("Move Later", "move_later", "Shift the selected bar one day later (Shift+Right)", "Schedule"),
    CommandDef("Shorten", "shorten", "Planned end one day earlier (-)", "Schedule"),
    CommandDef("Lengthen", "lengthen", "Planned end one day later (+)", "Schedule"),
    # -- View --
    CommandDef("Fold/Unfold", "toggle_collapse", "Toggle fold on selected row (Space)", "View"),
    CommandDef("Collapse All", "collapse_all", "Show only top-level rows (<)", "View"),
    CommandDef("Expand All", "expand_all", "Expand every parent (>)", "View"),
    CommandDef("Warnings", "warnings", "Show stale references and constraint violations (!)", "View"),
    CommandDef("Toggle Dependency Lines", "toggle_dependencies", "Show or hide connectors (c)", "View"),
    CommandDef("Quit", "quit_app", "Quit application (q)", "View"),
    # -- Gantt --
    CommandDef("Gantt: Day Zoom", "zoom_day", "One column per day (D)", "Gantt"),
    CommandDef("Gantt: Week Zoom", "zoom_week", "Week buckets (W)", "Gantt"),
    CommandDef("Gantt: Month Zoom", "zoom_month", "Month buckets (M)", "Gantt"),
    CommandDef("Gantt: Quarter Zoom", "zoom_quarter", "Quarter buckets (Q)", "Gantt"),
    CommandDef("Gantt: Go to Today", "gantt_today", "Scroll gantt to today (t)", "Gantt"),
]


class GanttCommandProvider(Provider):
    """Textual Command Palette provider for TUI Gantt actions."""

    async def discover(self) -> Hits:
        """Yield every command."""
        for cmd in COMMANDS:
            yield Hit(
                1.0,
                cmd.display,
                self._make_callback(cmd.action),
                help=cmd.help,
            )

    async def search(self, query: str) -> Hits:
        """Search commands with fuzzy matching."""
        query = query.lower()
        for cmd in COMMANDS:
            # Match against display name, help text, and category
            searchable = f"{cmd.display} {cmd.help} {cmd.category}".lower()
            if self._fuzzy_match(query, searchable):
                yield Hit(
                    self._score(query, cmd.display.lower()),
                    cmd.display,
                    self._make_callback(cmd.action),
                    help=cmd.help,
                )

    def _make_callback(self, action: str):
        """Create a callback that runs the given action on the app."""
        async def callback() -> None:
            await self.app.run_action(action)
        return callback

    @staticmethod
    def _fuzzy_match(query: str, text: str) -> bool:
        """Check if all characters of query appear in order in text."""
        it = iter(text)
        return all(ch in it for ch in query)

    @staticmethod
    def _score(query: str, text: str) -> float:
        """Score a match: higher is better (closer to 1.0)."""
        if not query:
            return 0.5
        if text == query:
            return 1.0
        if text.startswith(query):
            return 0.9
        if query in text:
            return 0.8
        return 0.7
