"""
Shared settings panel utilities for the settings TUI.
"""

from __future__ import annotations

from typing import Any, Mapping

from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Static, Switch


def row_id(item_id: str) -> str:
    return f"{item_id}-row"


def value_id(control_id: str) -> str:
    return f"{control_id}-value"


def step_button_id(control_id: str, direction: int) -> str:
    return f"{control_id}-{'inc' if direction > 0 else 'dec'}"


def action_button_id(action_id: str) -> str:
    return f"action-{action_id}"


def label_value_id(label_id: str) -> str:
    return f"label-{label_id}"


def _description(text: str) -> list[Widget]:
    return [Static(text, classes="settings-description", markup=False)] if text else []


def _section_header(title: str) -> Widget:
    """Create a section divider."""
    return Static(title, classes="settings-section")


def _label_row(title: str, label_id: str, value: str = "") -> Widget:
    """Create a read-only title/value row."""
    return Horizontal(
        Static(title, classes="settings-label"),
        Static(value, id=label_value_id(label_id), classes="settings-value", markup=False),
        id=row_id(label_value_id(label_id)),
        classes="settings-field",
    )


def _toggle_row(label: str, control_id: str, *, value: bool = False, description: str = "") -> Widget:
    """Create a labeled Switch row."""
    return Vertical(
        Horizontal(
            Static(label, classes="settings-label"),
            Switch(value=bool(value), id=control_id),
            classes="settings-field",
        ),
        *_description(description),
        id=row_id(control_id),
        classes="settings-item",
    )


def _stepper_row(label: str, control_id: str, *, text: str = "", description: str = "") -> Widget:
    """Create a labeled -/value/+ row."""
    return Vertical(
        Horizontal(
            Static(label, classes="settings-label"),
            Button("-", id=step_button_id(control_id, -1), classes="settings-step"),
            Static(text, id=value_id(control_id), classes="settings-value", markup=False),
            Button("+", id=step_button_id(control_id, 1), classes="settings-step"),
            classes="settings-field",
        ),
        *_description(description),
        id=row_id(control_id),
        classes="settings-item",
    )


def _action_row(title: str, action_id: str, button_text: str, *, description: str = "") -> Widget:
    """Create a title/button row."""
    return Vertical(
        Horizontal(
            Static(title, classes="settings-label"),
            Button(button_text, id=action_button_id(action_id), classes="settings-action"),
            classes="settings-field",
        ),
        *_description(description),
        id=row_id(action_button_id(action_id)),
        classes="settings-item",
    )


def _set_switch(owner: Widget, field_id: str, value: bool) -> None:
    """Set a Switch widget value if the widget exists."""
    try:
        owner.query_one(f"#{field_id}", Switch).value = bool(value)
    except Exception:
        return


def _set_static(owner: Widget, field_id: str, text: str) -> None:
    """Update a Static widget if it exists."""
    try:
        owner.query_one(f"#{field_id}", Static).update(text)
    except Exception:
        return


def _set_button(owner: Widget, field_id: str, *, label: str, disabled: bool) -> None:
    try:
        button = owner.query_one(f"#{field_id}", Button)
    except Exception:
        return
    button.label = label
    button.disabled = disabled


def _set_disabled(owner: Widget, field_id: str, disabled: bool) -> None:
    try:
        owner.query_one(f"#{field_id}").disabled = disabled
    except Exception:
        return


def _set_visible(owner: Widget, field_id: str, visible: bool) -> None:
    try:
        owner.query_one(f"#{field_id}").display = bool(visible)
    except Exception:
        return


class BaseSettingsTab(Widget):
    """Base widget for settings panel views."""

    class StatusUpdate(Message):
        """Status update emitted when no controller status handler is available."""

        def __init__(self, message: str, error: bool = False) -> None:
            super().__init__()
            self.message = message
            self.error = error

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._is_refreshing = False

    def refresh_fields(self, values: Mapping[str, Any]) -> None:
        """Push rendered values into the tab widgets."""
        raise NotImplementedError("Settings tab must implement refresh_fields().")

    def guarded_refresh_fields(self, values: Mapping[str, Any]) -> None:
        """Run refresh with `_is_refreshing` guard enabled."""
        if self._is_refreshing:
            return
        self._is_refreshing = True
        try:
            self.refresh_fields(values)
        finally:
            self._is_refreshing = False

    def post_status(self, message: str, error: bool = False) -> None:
        """Post status through the parent controller, or emit a message."""
        controller = getattr(self, "parent", None)
        while controller is not None:
            set_status = getattr(controller, "_set_status", None)
            if callable(set_status):
                set_status(message, error)
                return
            controller = getattr(controller, "parent", None)
        self.post_message(self.StatusUpdate(message, error))
