"""
Panel composition.

A ``PanelModel`` is an ordered list of items (section headers, read-only
labels, parameter bindings and guarded actions) plus the refresh coordinator
and per-action confirmation gates that serve them. It has no Textual
dependency; the settings widgets render whatever ``show()`` returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from opsettings.errors import SettingsError
from opsettings.logging import format_exception_summary, get_logger
from opsettings.params.store import ParamStore

from .binding import BindingResult, ControlBinding, DisplayValue, is_offroad
from .gate import ActionExecutor, ConfirmationGate, GateResult, GateState, InlineExecutor, PendingAction
from .refresh import RefreshCoordinator

logger = get_logger(__name__)

Prompt = Union[str, Callable[[], str]]


@dataclass(frozen=True)
class SectionItem:
    title: str


@dataclass(frozen=True)
class LabelItem:
    label_id: str
    title: str
    provider: Callable[[], str]


@dataclass(frozen=True)
class BindingItem:
    binding: ControlBinding

    @property
    def control_id(self) -> str:
        return self.binding.control_id


@dataclass(frozen=True)
class ActionSpec:
    """A button-triggered operation.

    Actions without a ``prompt`` run immediately; the rest go through a
    confirmation dialog first. ``inline`` actions touch only the store and
    run on the calling thread instead of the panel's executor.
    """

    action_id: str
    title: str
    button_text: str
    run: Callable[[], int]
    description: str = ""
    prompt: Optional[Prompt] = None
    confirm_text: str = "OK"
    offroad_only: bool = False
    hidden_when: Optional[str] = None
    requires: Optional[str] = None
    listed: bool = True
    inline: bool = False
    on_start: Optional[Callable[[], None]] = None

    @property
    def guarded(self) -> bool:
        return self.prompt is not None

    def pending(self) -> PendingAction:
        return PendingAction(
            action_id=self.action_id,
            prompt=self.prompt if self.prompt is not None else "",
            run=self.run,
            confirm_text=self.confirm_text,
        )


@dataclass(frozen=True)
class ActionItem:
    spec: ActionSpec
    gate: ConfirmationGate

    @property
    def action_id(self) -> str:
        return self.spec.action_id


@dataclass(frozen=True)
class ActionState:
    """Rendered state of an action button."""

    text: str
    enabled: bool
    visible: bool


PanelItem = Union[SectionItem, LabelItem, BindingItem, ActionItem]


class PanelModel:
    """Ordered settings items for one panel."""

    def __init__(
        self,
        panel_id: str,
        title: str,
        store: ParamStore,
        *,
        coordinator: Optional[RefreshCoordinator] = None,
        executor: Optional[ActionExecutor] = None,
    ) -> None:
        self.panel_id = panel_id
        self.title = title
        self.store = store
        self.coordinator = coordinator or RefreshCoordinator(panel_id)
        self._executor: ActionExecutor = executor or InlineExecutor()
        self._items: list[PanelItem] = []
        self._button_text: dict[str, Callable[[], str]] = {}
        self._enabled: dict[str, Callable[[], bool]] = {}
        self._result_hooks: dict[str, Callable[[GateResult], None]] = {}
        self.on_result: Optional[Callable[[GateResult], None]] = None
        self.on_prompt: Optional[Callable[[str, str], None]] = None

    # -- composition -------------------------------------------------------

    @property
    def items(self) -> tuple[PanelItem, ...]:
        return tuple(self._items)

    def add_section(self, title: str) -> SectionItem:
        item = SectionItem(title)
        self._items.append(item)
        return item

    def add_label(self, label_id: str, title: str, provider: Callable[[], str]) -> LabelItem:
        item = LabelItem(label_id=label_id, title=title, provider=provider)
        self.coordinator.add_label(label_id, provider)
        self._items.append(item)
        return item

    def add_binding(self, binding: ControlBinding) -> BindingItem:
        item = BindingItem(binding)
        self.coordinator.add_binding(binding)
        self._items.append(item)
        return item

    def add_action(
        self,
        spec: ActionSpec,
        *,
        button_text: Optional[Callable[[], str]] = None,
        enabled: Optional[Callable[[], bool]] = None,
        on_result: Optional[Callable[[GateResult], None]] = None,
    ) -> ActionItem:
        executor = InlineExecutor() if spec.inline else self._executor
        gate = ConfirmationGate(spec.action_id, executor=executor, on_result=self._dispatch_result)
        item = ActionItem(spec=spec, gate=gate)
        if button_text is not None:
            self._button_text[spec.action_id] = button_text
        if enabled is not None:
            self._enabled[spec.action_id] = enabled
        if on_result is not None:
            self._result_hooks[spec.action_id] = on_result
        self._items.append(item)
        return item

    # -- lookup ------------------------------------------------------------

    def bindings(self) -> list[ControlBinding]:
        return [item.binding for item in self._items if isinstance(item, BindingItem)]

    def binding(self, key: str) -> ControlBinding:
        for binding in self.bindings():
            if binding.key == key:
                return binding
        raise KeyError(f"No control bound to '{key}' on {self.panel_id}")

    def actions(self) -> list[ActionItem]:
        return [item for item in self._items if isinstance(item, ActionItem)]

    def action(self, action_id: str) -> ActionItem:
        for item in self.actions():
            if item.action_id == action_id:
                return item
        raise KeyError(f"No action '{action_id}' on {self.panel_id}")

    @property
    def executor(self) -> ActionExecutor:
        return self._executor

    @executor.setter
    def executor(self, executor: ActionExecutor) -> None:
        self._executor = executor
        for item in self.actions():
            if not item.spec.inline:
                item.gate.executor = executor

    # -- rendering ---------------------------------------------------------

    def action_state(self, action_id: str) -> ActionState:
        item = self.action(action_id)
        spec = item.spec
        text_provider = self._button_text.get(action_id)
        text = text_provider() if text_provider is not None else spec.button_text
        try:
            visible = not (spec.hidden_when and self.store.get_bool(spec.hidden_when))
            enabled = not item.gate.busy
            if spec.offroad_only and not is_offroad(self.store):
                enabled = False
        except SettingsError:
            return ActionState(text=text, enabled=False, visible=True)
        check = self._enabled.get(action_id)
        if check is not None and not check():
            enabled = False
        return ActionState(text=text, enabled=enabled, visible=bool(visible))

    def show(self) -> dict[str, Any]:
        """Values for every control, label and action on this panel."""
        values = self.coordinator.refresh_visible()
        for item in self.actions():
            values[item.action_id] = self.action_state(item.action_id)
        return values

    # -- input -------------------------------------------------------------

    def apply_input(self, key: str, value: Any) -> tuple[BindingResult, dict[str, DisplayValue]]:
        """Route user input to a binding and re-render its dependents."""
        binding = self.binding(key)
        try:
            result = binding.on_user_input(value)
        except SettingsError as exc:
            logger.warning("%s: %s", key, format_exception_summary(exc))
            return BindingResult(handled=False, error=str(exc)), {binding.control_id: binding.render()}
        dependents = self.coordinator.refresh_dependents(result.changed_keys or (key,))
        dependents.setdefault(binding.control_id, binding.cached or binding.render())
        return result, dependents

    def step(self, key: str, direction: int) -> tuple[BindingResult, dict[str, DisplayValue]]:
        binding = self.binding(key)
        try:
            result = binding.step(direction)
        except SettingsError as exc:
            logger.warning("%s: %s", key, format_exception_summary(exc))
            return BindingResult(handled=False, error=str(exc)), {binding.control_id: binding.render()}
        if not result.handled:
            return result, {}
        dependents = self.coordinator.refresh_dependents(result.changed_keys)
        return result, dependents

    def trigger(self, action_id: str) -> Optional[str]:
        """Start an action; returns the prompt to show, or None.

        Unguarded actions run straight away and return None.
        """
        item = self.action(action_id)
        state = self.action_state(action_id)
        if not state.enabled or not state.visible:
            return None
        prompt = item.gate.trigger(item.spec.pending())
        if prompt is None or item.spec.guarded:
            return prompt
        self.confirm(action_id)
        return None

    def request_prompt(self, action_id: str, action: PendingAction) -> Optional[str]:
        """Raise a confirmation from a background flow rather than a button."""
        if not self.coordinator.alive:
            return None
        item = self.action(action_id)
        prompt = item.gate.trigger(action)
        if prompt is not None and self.on_prompt is not None:
            self.on_prompt(action_id, prompt)
        return prompt

    def confirm(self, action_id: str) -> Optional[GateResult]:
        item = self.action(action_id)
        if item.gate.state is not GateState.PROMPTED:
            return None
        if item.spec.on_start is not None:
            try:
                item.spec.on_start()
            except SettingsError as exc:
                return item.gate.fail(exc)
        return item.gate.confirm()

    def cancel(self, action_id: str) -> Optional[GateResult]:
        return self.action(action_id).gate.cancel()

    def teardown(self) -> None:
        self.coordinator.teardown()

    def _dispatch_result(self, result: GateResult) -> None:
        if not self.coordinator.alive:
            logger.debug("%s torn down; dropping %s result", self.panel_id, result.action_id)
            return
        if result.outcome == "failed":
            logger.warning("%s/%s failed: %s", self.panel_id, result.action_id, result.error)
        hook = self._result_hooks.get(result.action_id)
        if hook is not None:
            hook(result)
        if self.on_result is not None:
            self.on_result(result)
