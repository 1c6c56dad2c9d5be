"""
TUI widget modules for the settings surface.
"""

from __future__ import annotations

from opsettings.ui.tui.widgets.settings_base import BaseSettingsTab
from opsettings.ui.tui.widgets.settings_panel import SettingsPanel

__all__ = [
    "BaseSettingsTab",
    "SettingsPanel",
]
