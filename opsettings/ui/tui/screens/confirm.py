"""Confirmation modal for guarded actions."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static


class ConfirmDialog(ModalScreen[bool]):
    """Yes/no prompt; dismisses with True only when confirmed."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
        Binding("enter", "confirm", "OK", show=False),
    ]

    def __init__(self, prompt: str, *, confirm_text: str = "OK", cancel_text: str = "Cancel") -> None:
        super().__init__()
        self.prompt = str(prompt or "").strip()
        self.confirm_text = confirm_text
        self.cancel_text = cancel_text

    def compose(self) -> ComposeResult:
        with Container(classes="confirm-modal"):
            yield Static(self.prompt, classes="confirm-prompt", markup=False)
            with Horizontal(classes="confirm-actions"):
                yield Button(self.cancel_text, id="confirm-cancel")
                yield Button(self.confirm_text, id="confirm-ok", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "confirm-ok")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
