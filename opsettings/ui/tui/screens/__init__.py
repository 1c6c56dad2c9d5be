"""
TUI screen modules for the settings surface.

Contains:
- SettingsScreen: tabbed panel controller
- ConfirmDialog: confirmation modal for guarded actions
"""

from __future__ import annotations

__all__ = [
    "ConfirmDialog",
    "SettingsScreen",
]


# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "SettingsScreen":
        from opsettings.ui.tui.screens.settings import SettingsScreen
        return SettingsScreen
    elif name == "ConfirmDialog":
        from opsettings.ui.tui.screens.confirm import ConfirmDialog
        return ConfirmDialog
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
