"""
Settings panel widget.

Renders one ``PanelModel`` as rows of switches, steppers, labels and action
buttons, and routes user input back through the model. The widget keeps no
settings state of its own; every refresh comes from ``PanelModel.show()`` or
the coordinator's dependents.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Button, Switch

from opsettings.errors import SettingsError
from opsettings.logging import format_exception_summary, get_logger
from opsettings.ui.tui.state.binding import DisplayValue
from opsettings.ui.tui.state.gate import GateResult
from opsettings.ui.tui.state.panels import ActionItem, ActionState, BindingItem, LabelItem, PanelModel, SectionItem

from .settings_base import (
    BaseSettingsTab,
    _action_row,
    _label_row,
    _section_header,
    _set_button,
    _set_disabled,
    _set_static,
    _set_switch,
    _set_visible,
    _stepper_row,
    _toggle_row,
    action_button_id,
    label_value_id,
    row_id,
    step_button_id,
    value_id,
)

logger = get_logger(__name__)


class SettingsPanel(BaseSettingsTab):
    """One tab of the settings surface."""

    def __init__(self, model: PanelModel, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.model = model
        self._keys_by_control: dict[str, str] = {
            binding.control_id: binding.key for binding in model.bindings()
        }
        self._labels: set[str] = {item.label_id for item in model.items if isinstance(item, LabelItem)}

    def compose(self) -> ComposeResult:
        values = self.model.show()
        with VerticalScroll(classes="settings-panel-scroll"):
            for item in self.model.items:
                if isinstance(item, SectionItem):
                    yield _section_header(item.title)
                elif isinstance(item, LabelItem):
                    yield _label_row(item.title, item.label_id, str(values.get(item.label_id, "")))
                elif isinstance(item, BindingItem):
                    yield self._binding_row(item, values.get(item.control_id))
                elif isinstance(item, ActionItem) and item.spec.listed:
                    state = values.get(item.action_id)
                    text = state.text if isinstance(state, ActionState) else item.spec.button_text
                    yield _action_row(
                        item.spec.title,
                        item.action_id,
                        text,
                        description=item.spec.description,
                    )

    @staticmethod
    def _binding_row(item: BindingItem, value: Optional[DisplayValue]):
        descriptor = item.binding.descriptor
        if descriptor.kind == "toggle":
            return _toggle_row(
                descriptor.label,
                item.control_id,
                value=bool(value.value) if value is not None else False,
                description=descriptor.description,
            )
        return _stepper_row(
            descriptor.label,
            item.control_id,
            text=value.text if value is not None else "",
            description=descriptor.description,
        )

    def on_mount(self) -> None:
        self.model.coordinator.subscribe(self._on_refreshed)
        self.model.on_result = self._on_action_result
        self.model.on_prompt = self._show_prompt
        self.guarded_refresh_fields(self.model.show())

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh_panel(self) -> None:
        """Re-read the whole panel from the store."""
        self.guarded_refresh_fields(self.model.show())

    def _on_refreshed(self, _values: Mapping[str, Any]) -> None:
        # Watch callbacks can change action state too, so re-show everything.
        self.refresh_panel()

    def refresh_fields(self, values: Mapping[str, Any]) -> None:
        for item_id, value in values.items():
            if isinstance(value, DisplayValue):
                self._apply_display(item_id, value)
            elif isinstance(value, ActionState):
                self._apply_action_state(item_id, value)
            elif item_id in self._labels:
                _set_static(self, label_value_id(item_id), str(value))

    def _apply_display(self, control_id: str, value: DisplayValue) -> None:
        key = self._keys_by_control.get(control_id)
        if key is None:
            return
        descriptor = self.model.binding(key).descriptor
        disabled = not value.enabled
        if descriptor.kind == "toggle":
            _set_switch(self, control_id, bool(value.value))
            _set_disabled(self, control_id, disabled)
        else:
            _set_static(self, value_id(control_id), value.text)
            _set_disabled(self, step_button_id(control_id, -1), disabled)
            _set_disabled(self, step_button_id(control_id, 1), disabled)
        _set_visible(self, row_id(control_id), value.visible)

    def _apply_action_state(self, action_id: str, state: ActionState) -> None:
        button_id = action_button_id(action_id)
        _set_button(self, button_id, label=state.text, disabled=not state.enabled)
        _set_visible(self, row_id(button_id), state.visible)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_switch_changed(self, event: Switch.Changed) -> None:
        if self._is_refreshing:
            return
        control_id = str(event.switch.id or "")
        key = self._keys_by_control.get(control_id)
        if key is None:
            return
        event.stop()
        cached = self.model.binding(key).cached
        if cached is not None and cached.value == bool(event.value):
            return
        result, dependents = self.model.apply_input(key, bool(event.value))
        self.guarded_refresh_fields(dependents)
        if result.handled:
            self.post_status(f"{self.model.binding(key).descriptor.label}: {'on' if event.value else 'off'}")
        elif result.error:
            self.post_status(result.error, True)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = str(event.button.id or "")
        if button_id.startswith("action-"):
            event.stop()
            self._press_action(button_id[len("action-"):])
            return
        for suffix, direction in (("-inc", 1), ("-dec", -1)):
            if button_id.endswith(suffix):
                key = self._keys_by_control.get(button_id[: -len(suffix)])
                if key is not None:
                    event.stop()
                    self._step(key, direction)
                return

    def _step(self, key: str, direction: int) -> None:
        result, dependents = self.model.step(key, direction)
        self.guarded_refresh_fields(dependents)
        if result.error:
            self.post_status(result.error, True)

    def _press_action(self, action_id: str) -> None:
        try:
            prompt = self.model.trigger(action_id)
        except KeyError:
            logger.warning("Unknown action button %s", action_id)
            return
        except SettingsError as exc:
            self.post_status(format_exception_summary(exc), True)
            return
        if prompt is not None:
            self._show_prompt(action_id, prompt)
        self.refresh_panel()

    def _show_prompt(self, action_id: str, prompt: str) -> None:
        from opsettings.ui.tui.screens.confirm import ConfirmDialog

        confirm_text = self.model.action(action_id).spec.confirm_text
        self.app.push_screen(
            ConfirmDialog(prompt, confirm_text=confirm_text),
            lambda confirmed: self._resolve_prompt(action_id, bool(confirmed)),
        )

    def _resolve_prompt(self, action_id: str, confirmed: bool) -> None:
        if confirmed:
            self.model.confirm(action_id)
        else:
            self.model.cancel(action_id)
        self.refresh_panel()

    def _on_action_result(self, result: GateResult) -> None:
        try:
            title = self.model.action(result.action_id).spec.title
        except KeyError:
            title = result.action_id
        if result.outcome == "failed":
            message = f"{title} failed: {result.error}"
            self.post_status(message, True)
            notify = getattr(self.app, "notify_event", None)
            if callable(notify):
                notify(message, severity="error")
        elif result.outcome == "completed":
            self.post_status(f"{title}: done")
        self.refresh_panel()
