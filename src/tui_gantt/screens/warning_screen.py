"""Schedule warnings modal screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

from rich.text import Text

from tui_gantt import theme


class WarningScreen(ModalScreen[None]):
    """Stale references, constraint violations and skipped records."""

    BINDINGS = [("escape", "dismiss", "Close"), ("exclamation_mark", "dismiss", "Close")]

    DEFAULT_CSS = """
    WarningScreen {
        align: center middle;
    }
    #warning-container {
        width: 80;
        max-height: 80%;
        background: $surface;
        border: thick $warning;
        padding: 1 2;
    }
    #warning-title {
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }
    .warning-section {
        margin-top: 1;
        text-style: bold;
    }
    """

    def __init__(self, sections: dict[str, list[str]]) -> None:
        super().__init__()
        self.sections = {title: items for title, items in sections.items() if items}

    @property
    def count(self) -> int:
        return sum(len(items) for items in self.sections.values())

    def compose(self) -> ComposeResult:
        icon = theme.WARNING_ICON.resolve(theme.is_dark(self))
        with VerticalScroll(id="warning-container"):
            yield Static(f"[bold]Warnings ({self.count})[/bold]", id="warning-title")
            if not self.sections:
                yield Static("No warnings.")
            for title, items in self.sections.items():
                yield Static(title, classes="warning-section")
                for item in items:
                    yield Static(Text.assemble(("⚠ ", icon), item), classes="warning-item")
