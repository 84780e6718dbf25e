"""Single-value edit modal."""

from __future__ import annotations

from collections.abc import Callable

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static

from tui_gantt.errors import ValidationError

Validator = Callable[[str], object]


class EditScreen(ModalScreen[str | None]):
    """Prompt for one text value.

    When *validate* is given it is called with the entered text; a
    ValidationError keeps the dialog open and shows the message.
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    EditScreen {
        align: center middle;
    }
    #edit-container {
        width: 64;
        height: auto;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #edit-label {
        margin-bottom: 1;
        text-style: bold;
    }
    #edit-error {
        color: $error;
        height: auto;
    }
    #edit-input {
        margin-bottom: 1;
    }
    #edit-buttons {
        align: center middle;
        height: 3;
    }
    #edit-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(
        self,
        label: str,
        initial_value: str = "",
        placeholder: str = "",
        validate: Validator | None = None,
    ) -> None:
        super().__init__()
        self._label = label
        self._initial_value = initial_value
        self._placeholder = placeholder
        self._validate = validate

    def compose(self) -> ComposeResult:
        with Vertical(id="edit-container"):
            yield Static(self._label, id="edit-label")
            yield Input(value=self._initial_value, placeholder=self._placeholder, id="edit-input")
            yield Static("", id="edit-error")
            with Horizontal(id="edit-buttons"):
                yield Button("OK", variant="primary", id="ok-btn")
                yield Button("Cancel", variant="default", id="cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#edit-input", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok-btn":
            self._submit(self.query_one("#edit-input", Input).value)
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit(event.value)

    def _submit(self, value: str) -> None:
        if self._validate is not None:
            try:
                self._validate(value)
            except ValidationError as exc:
                self.query_one("#edit-error", Static).update(exc.message)
                return
        self.dismiss(value)

    def action_cancel(self) -> None:
        self.dismiss(None)
