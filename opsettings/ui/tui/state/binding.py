"""Parameter-backed control bindings.

A single ``ControlBinding`` type, configured by a declarative
``ControlDescriptor``, pairs one UI control with one persisted parameter. The
rendered value is always derived from the store: it is re-read on every
``render()`` and updated from the written value on every accepted input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from opsettings.errors import InvalidInput, StoreUnavailable
from opsettings.logging import format_exception_summary, get_logger
from opsettings.params.store import ParamStore

from .app_state import UIState

logger = get_logger(__name__)

ControlKind = Literal["toggle", "stepper"]

OFFROAD_PARAM = "IsOffroad"
UNAVAILABLE_TEXT = "unavailable"


def is_offroad(store: ParamStore) -> bool:
    """Offroad unless the store explicitly says otherwise."""
    raw = store.get(OFFROAD_PARAM)
    return raw is None or raw.strip() == b"1"


@dataclass(frozen=True)
class VisibilityRule:
    """Show a control only while ``key`` holds one of ``values``."""

    key: str
    values: tuple[str, ...]
    default: str = ""

    def matches(self, store: ParamStore) -> bool:
        current = store.get_str(self.key, self.default).strip() or self.default
        return current in self.values


@dataclass(frozen=True)
class ControlDescriptor:
    """Declarative description of one parameter-backed control."""

    key: str
    label: str
    description: str = ""
    kind: ControlKind = "toggle"
    minimum: int = 0
    maximum: int = 1
    step: int = 1
    default: int = 0
    scale: float = 1.0
    decimals: int = 0
    unit: str = ""
    choices: tuple[tuple[int, str], ...] = ()
    visible_when: Optional[VisibilityRule] = None
    publish: tuple[str, ...] = ()
    clears_keys: tuple[str, ...] = ()
    lock_key: Optional[str] = None
    offroad_only: bool = False
    requires: Optional[str] = None

    @property
    def control_id(self) -> str:
        return f"setting-{self.key}"

    @property
    def depends_on(self) -> tuple[str, ...]:
        keys = [self.key]
        if self.visible_when is not None:
            keys.append(self.visible_when.key)
        if self.lock_key:
            keys.append(self.lock_key)
        return tuple(keys)

    def validate(self) -> None:
        if not self.key:
            raise ValueError("control key is required")
        if self.kind not in ("toggle", "stepper"):
            raise ValueError(f"{self.key}: unknown control kind '{self.kind}'")
        if self.kind == "stepper":
            if self.step <= 0:
                raise ValueError(f"{self.key}: step must be positive")
            if self.minimum > self.maximum:
                raise ValueError(f"{self.key}: minimum exceeds maximum")
            if not self.minimum <= self.default <= self.maximum:
                raise ValueError(f"{self.key}: default outside [{self.minimum}, {self.maximum}]")
            if self.publish:
                raise ValueError(f"{self.key}: only toggles publish flags")

    def format_value(self, value: Any) -> str:
        """Map a stored value to its display text."""
        if self.kind == "toggle":
            return "on" if value else "off"
        labels = dict(self.choices)
        if value in labels:
            return labels[value]
        scaled = value * self.scale
        text = f"{scaled:.{self.decimals}f}" if self.decimals else str(int(round(scaled)))
        return f"{text}{self.unit}"


def toggle(key: str, label: str, description: str = "", **kwargs: Any) -> ControlDescriptor:
    """Build a boolean toggle descriptor."""
    return ControlDescriptor(key=key, label=label, description=description, kind="toggle", **kwargs)


def stepper(
    key: str,
    label: str,
    minimum: int,
    maximum: int,
    *,
    description: str = "",
    step: int = 1,
    default: Optional[int] = None,
    **kwargs: Any,
) -> ControlDescriptor:
    """Build a bounded integer stepper descriptor."""
    return ControlDescriptor(
        key=key,
        label=label,
        description=description,
        kind="stepper",
        minimum=minimum,
        maximum=maximum,
        step=step,
        default=minimum if default is None else default,
        **kwargs,
    )


@dataclass(frozen=True)
class DisplayValue:
    """What a control shows: text, raw value, and interaction state."""

    text: str
    value: Any
    enabled: bool = True
    visible: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class BindingResult:
    """Result value for binding input actions."""

    handled: bool
    value: Any = None
    changed_keys: tuple[str, ...] = ()
    error: Optional[str] = None


class ControlBinding:
    """One UI control bound to one persisted parameter."""

    def __init__(
        self,
        descriptor: ControlDescriptor,
        store: ParamStore,
        *,
        ui_state: Optional[UIState] = None,
    ) -> None:
        descriptor.validate()
        self._descriptor = descriptor
        self._store = store
        self._ui_state = ui_state
        self._cached: Optional[DisplayValue] = None

    @property
    def descriptor(self) -> ControlDescriptor:
        return self._descriptor

    @property
    def key(self) -> str:
        return self._descriptor.key

    @property
    def control_id(self) -> str:
        return self._descriptor.control_id

    @property
    def cached(self) -> Optional[DisplayValue]:
        """Last rendered value (None before the first render)."""
        return self._cached

    def read_value(self) -> Any:
        """Read the current value from the store."""
        desc = self._descriptor
        if desc.kind == "toggle":
            return self._store.get_bool(desc.key)
        return self._store.get_int(desc.key, desc.default)

    def is_visible(self) -> bool:
        rule = self._descriptor.visible_when
        return True if rule is None else rule.matches(self._store)

    def is_enabled(self) -> bool:
        desc = self._descriptor
        if desc.lock_key and self._store.get_bool(desc.lock_key):
            return False
        if desc.offroad_only and not is_offroad(self._store):
            return False
        return True

    def render(self) -> DisplayValue:
        """Read the bound parameter and map it to a display value."""
        try:
            value = self.read_value()
            display = DisplayValue(
                text=self._descriptor.format_value(value),
                value=value,
                enabled=self.is_enabled(),
                visible=self.is_visible(),
            )
        except StoreUnavailable as exc:
            display = DisplayValue(
                text=UNAVAILABLE_TEXT,
                value=None,
                enabled=False,
                visible=True,
                error=str(exc),
            )
        self._cached = display
        return display

    def validate_input(self, new_value: Any) -> Any:
        """Return ``new_value`` coerced into the control's domain.

        Raises:
            InvalidInput: If the value is outside the declared domain.
        """
        desc = self._descriptor
        if desc.kind == "toggle":
            if not isinstance(new_value, bool):
                raise InvalidInput(f"{desc.key} accepts only true or false")
            return new_value

        if isinstance(new_value, bool):
            raise InvalidInput(f"{desc.key} expects an integer")
        if isinstance(new_value, str):
            try:
                new_value = int(new_value.strip())
            except ValueError:
                raise InvalidInput(f"{desc.key} expects an integer, got {new_value!r}") from None
        if not isinstance(new_value, int):
            raise InvalidInput(f"{desc.key} expects an integer")
        if not desc.minimum <= new_value <= desc.maximum:
            raise InvalidInput(
                f"{desc.key} must be within [{desc.minimum}, {desc.maximum}], got {new_value}"
            )
        if (new_value - desc.minimum) % desc.step != 0:
            raise InvalidInput(f"{desc.key} must move in steps of {desc.step}")
        return new_value

    def on_user_input(self, new_value: Any) -> BindingResult:
        """Validate, persist, and publish a user-entered value.

        The store write, any ``clears_keys`` removal and flag publication
        are applied together; on failure the previous value is restored and
        no flag is left changed.

        Raises:
            StoreUnavailable: If the parameter backend cannot be reached.
        """
        desc = self._descriptor
        try:
            value = self.validate_input(new_value)
        except InvalidInput as exc:
            return BindingResult(handled=False, error=str(exc))

        if not self.is_enabled():
            return BindingResult(handled=False, error=f"{desc.label} is locked")

        previous = self._store.get(desc.key)
        previous_flags = {name: self._ui_state.flag(name) for name in desc.publish} if self._ui_state else {}
        self._store.put(desc.key, value)
        try:
            for cleared in desc.clears_keys:
                self._store.remove(cleared)
            if self._ui_state is not None and desc.publish:
                self._ui_state.publish_many(desc.publish, bool(value))
        except Exception as exc:
            self._rollback(previous, previous_flags)
            logger.warning("Rolled back %s: %s", desc.key, format_exception_summary(exc))
            if isinstance(exc, StoreUnavailable):
                raise
            return BindingResult(handled=False, error=str(exc))

        self._cached = DisplayValue(
            text=desc.format_value(value),
            value=value,
            enabled=True,
            visible=self.is_visible(),
        )
        logger.debug("Set %s = %r", desc.key, value)
        return BindingResult(handled=True, value=value, changed_keys=(desc.key, *desc.clears_keys))

    def step(self, direction: int) -> BindingResult:
        """Move a stepper one step up (``+1``) or down (``-1``), clamped."""
        desc = self._descriptor
        if desc.kind != "stepper":
            return BindingResult(handled=False, error=f"{desc.key} is not a stepper")
        current = self.read_value()
        if (direction < 0 and current <= desc.minimum) or (direction > 0 and current >= desc.maximum):
            return BindingResult(handled=False, value=current)
        target = current + (desc.step if direction > 0 else -desc.step)
        target = max(desc.minimum, min(desc.maximum, target))
        target = desc.minimum + ((target - desc.minimum) // desc.step) * desc.step
        if target == current:
            return BindingResult(handled=False, value=current)
        return self.on_user_input(target)

    def sync_published_flags(self) -> None:
        """Copy the stored toggle value into its published flags."""
        desc = self._descriptor
        if self._ui_state is None or not desc.publish:
            return
        self._ui_state.publish_many(desc.publish, bool(self.read_value()))

    def _rollback(self, previous: Optional[bytes], previous_flags: dict[str, bool]) -> None:
        key = self._descriptor.key
        if previous is None:
            self._store.remove(key)
        else:
            self._store.put(key, previous)
        if self._ui_state is not None:
            for name, flag_value in previous_flags.items():
                self._ui_state.publish(name, flag_value)
