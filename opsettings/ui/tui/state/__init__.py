"""State models for the settings panels and app-wide UI state."""

from __future__ import annotations

from .app_state import Notification, UIState, UIStateSnapshot
from .binding import (
    BindingResult,
    ControlBinding,
    ControlDescriptor,
    DisplayValue,
    VisibilityRule,
    stepper,
    toggle,
)
from .catalog import PANELS, ActionContext, build_panel, build_panels
from .gate import ConfirmationGate, GateResult, GateState, InlineExecutor, PendingAction
from .panels import ActionSpec, ActionState, PanelModel
from .refresh import RefreshCoordinator, WatchTarget

__all__ = [
    "PANELS",
    "ActionContext",
    "ActionSpec",
    "ActionState",
    "BindingResult",
    "ConfirmationGate",
    "ControlBinding",
    "ControlDescriptor",
    "DisplayValue",
    "GateResult",
    "GateState",
    "InlineExecutor",
    "Notification",
    "PanelModel",
    "PendingAction",
    "RefreshCoordinator",
    "UIState",
    "UIStateSnapshot",
    "VisibilityRule",
    "WatchTarget",
    "build_panel",
    "build_panels",
    "stepper",
    "toggle",
]
