"""Tabbed settings screen for the settings TUI."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widget import Widget
from textual.widgets import Static, TabbedContent, TabPane

from opsettings.errors import SettingsError
from opsettings.logging import format_exception_summary, get_logger
from opsettings.ui.tui.screens.base import ManagedScreenMixin, ManagedWorkerExecutor
from opsettings.ui.tui.state.catalog import build_panels
from opsettings.ui.tui.state.panels import PanelModel
from opsettings.ui.tui.widgets.settings_panel import SettingsPanel

logger = get_logger(__name__)


class SettingsScreen(ManagedScreenMixin, Widget):
    """Controller for the panel tabs.

    Panels are built from the app's shared action context unless passed in.
    The screen owns the panels' lifetime: unmounting tears down every
    refresh coordinator and cancels in-flight action workers.
    """

    BINDINGS = [
        Binding("f2", "local_settings_tab_1", "Device", show=True),
        Binding("f3", "local_settings_tab_2", "Network", show=True),
        Binding("f4", "local_settings_tab_3", "Toggles", show=True),
        Binding("f5", "local_settings_tab_4", "Software", show=True),
        Binding("f6", "local_settings_tab_5", "Developer", show=True),
        Binding("f7", "local_settings_tab_6", "Tuning", show=True),
    ]

    _ACTION_TIMEOUT_SECONDS = 5.0

    def __init__(
        self,
        *args: Any,
        panels: Optional[Sequence[PanelModel]] = None,
        start_panel: str = "device",
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._panels: list[PanelModel] = list(panels) if panels is not None else []
        self.start_panel = start_panel
        self.executor = ManagedWorkerExecutor(self, timeout_s=self._ACTION_TIMEOUT_SECONDS)
        for panel in self._panels:
            panel.executor = self.executor

    @property
    def panels(self) -> tuple[PanelModel, ...]:
        return tuple(self._panels)

    def _ensure_panels(self) -> list[PanelModel]:
        if self._panels:
            return self._panels
        context = getattr(self.app, "settings_context", None)
        if context is None:
            raise RuntimeError("SettingsScreen needs panels or an app settings_context")
        self._panels = build_panels(
            context,
            watcher=getattr(self.app, "file_watcher", None),
            executor=self.executor,
        )
        return self._panels

    def compose(self) -> ComposeResult:
        panels = self._ensure_panels()
        initial = self._tab_id(self.start_panel)
        if initial not in {self._tab_id(panel.panel_id) for panel in panels}:
            initial = self._tab_id(panels[0].panel_id)
        with Vertical(id="settings-layout"):
            yield Static("", id="settings-status")
            with TabbedContent(id="settings-tabs", initial=initial):
                for number, panel in enumerate(panels, start=2):
                    with TabPane(f"{panel.title} (F{number})", id=self._tab_id(panel.panel_id)):
                        yield SettingsPanel(panel, id=self._panel_widget_id(panel.panel_id))

    def on_mount(self) -> None:
        watcher = getattr(self.app, "file_watcher", None)
        if watcher is not None:
            for panel in self._panels:
                if panel.coordinator.watcher is None:
                    panel.coordinator.attach_watcher(watcher)
        self.sync_published_flags()

    def on_show(self) -> None:
        self.open_start_panel()

    def on_unmount(self) -> None:
        self._cancel_managed_workers(reason="settings-unmount")
        for panel in self._panels:
            panel.teardown()

    def sync_published_flags(self) -> None:
        """Mirror stored toggle values into the shared UI flags."""
        for panel in self._panels:
            for binding in panel.bindings():
                try:
                    binding.sync_published_flags()
                except SettingsError as exc:
                    logger.warning("Cannot sync %s: %s", binding.key, format_exception_summary(exc))

    def open_start_panel(self) -> None:
        """Show the configured start panel, refreshed from the store."""
        panel_id = self.start_panel
        if panel_id not in {panel.panel_id for panel in self._panels} and self._panels:
            panel_id = self._panels[0].panel_id
        try:
            self.query_one("#settings-tabs", TabbedContent).active = self._tab_id(panel_id)
        except Exception:
            logger.debug("Settings tabs not mounted yet")
        self.refresh_panel(panel_id)

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        tabbed = getattr(event, "tabbed_content", None)
        if getattr(tabbed, "id", None) != "settings-tabs":
            return
        source = getattr(event, "pane", None) or getattr(event, "tab", None)
        tab_id = self._normalize_tab_id(str(getattr(source, "id", "") or ""))
        panel_id = tab_id[len("settings-"):] if tab_id.startswith("settings-") else tab_id
        if panel_id not in {panel.panel_id for panel in self._panels}:
            return
        ui_state = getattr(self.app, "ui_state", None)
        if ui_state is not None:
            ui_state.set_active_panel(panel_id)
        self.refresh_panel(panel_id)

    def refresh_panel(self, panel_id: Optional[str] = None) -> None:
        """Re-read a panel (default: the active one) from the store."""
        target = panel_id or self._active_panel_id()
        try:
            widget = self.query_one(f"#{self._panel_widget_id(target)}", SettingsPanel)
        except Exception:
            return
        widget.refresh_panel()

    def refresh_all(self) -> None:
        for panel in self._panels:
            self.refresh_panel(panel.panel_id)

    def _active_panel_id(self) -> str:
        try:
            tabs = self.query_one("#settings-tabs", TabbedContent)
            active = self._normalize_tab_id(str(getattr(tabs, "active", "") or "").strip())
            if active.startswith("settings-"):
                return active[len("settings-"):]
        except Exception:
            pass
        return self.start_panel

    @staticmethod
    def _normalize_tab_id(value: str) -> str:
        text = (value or "").strip()
        if text.startswith("--content-tab-"):
            text = text[len("--content-tab-"):]
        return text[:-4] if text.endswith("-tab") else text

    @staticmethod
    def _tab_id(panel_id: str) -> str:
        return f"settings-{panel_id}"

    @staticmethod
    def _panel_widget_id(panel_id: str) -> str:
        return f"panel-{panel_id}"

    def _activate_tab(self, index: int) -> None:
        if not 0 <= index < len(self._panels):
            return
        self.query_one("#settings-tabs", TabbedContent).active = self._tab_id(self._panels[index].panel_id)

    def action_local_settings_tab_1(self) -> None:
        self._activate_tab(0)

    def action_local_settings_tab_2(self) -> None:
        self._activate_tab(1)

    def action_local_settings_tab_3(self) -> None:
        self._activate_tab(2)

    def action_local_settings_tab_4(self) -> None:
        self._activate_tab(3)

    def action_local_settings_tab_5(self) -> None:
        self._activate_tab(4)

    def action_local_settings_tab_6(self) -> None:
        self._activate_tab(5)

    def _set_status(self, message: str, error: bool) -> None:
        try:
            widget = self.query_one("#settings-status", Static)
            widget.update(Text(message, style="red") if error else Text(message))
        except Exception:
            logger.warning(message)

    def on_base_settings_tab_status_update(self, message: SettingsPanel.StatusUpdate) -> None:
        self._set_status(message.message, message.error)
