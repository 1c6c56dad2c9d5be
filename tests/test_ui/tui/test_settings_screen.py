from __future__ import annotations

from types import SimpleNamespace

import pytest
from rich.text import Text

from opsettings.system.watcher import FileWatcher
from opsettings.ui.tui.screens.base import ManagedWorkerExecutor
from opsettings.ui.tui.screens.settings import SettingsScreen
from opsettings.ui.tui.state import build_panels
from opsettings.ui.tui.widgets.settings_base import BaseSettingsTab


class _Tabs:
    def __init__(self) -> None:
        self.active = ""


class _StaticWidget:
    def __init__(self) -> None:
        self.last = None

    def update(self, value) -> None:
        self.last = value


class _FakePanelWidget:
    def __init__(self) -> None:
        self.refresh_calls = 0

    def refresh_panel(self) -> None:
        self.refresh_calls += 1


class _FakeApp:
    def __init__(self, context=None) -> None:
        self.settings_context = context
        self.file_watcher = None
        self.ui_state = context.ui_state if context is not None else None
        self.cancelled: list[str] = []

    def cancel_managed_workers_for_owner(self, *, owner, reason):
        self.cancelled.append(owner)
        return {}


class _TestableSettingsScreen(SettingsScreen):
    def __init__(self, app, **kwargs):
        super().__init__(id="settings-screen", **kwargs)
        self._test_app = app
        self.widgets = {}

    @property
    def app(self):  # type: ignore[override]
        return self._test_app

    def query_one(self, selector, _cls=None):  # type: ignore[override]
        key = selector if isinstance(selector, str) else selector
        if key in self.widgets:
            return self.widgets[key]
        raise KeyError(key)

    def call_after_refresh(self, fn):  # type: ignore[override]
        fn()


def _screen(action_context, start_panel: str = "device") -> _TestableSettingsScreen:
    app = _FakeApp(action_context)
    screen = _TestableSettingsScreen(app, start_panel=start_panel)
    screen._ensure_panels()
    screen.widgets["#settings-tabs"] = _Tabs()
    screen.widgets["#settings-status"] = _StaticWidget()
    for panel in screen.panels:
        screen.widgets[f"#panel-{panel.panel_id}"] = _FakePanelWidget()
    return screen


def test_builds_panels_from_app_context(action_context) -> None:
    screen = _screen(action_context)

    assert [p.panel_id for p in screen.panels] == [
        "device",
        "network",
        "toggles",
        "software",
        "developer",
        "tuning",
    ]
    reboot_gate = screen.panels[0].action("reboot").gate
    assert isinstance(reboot_gate.executor, ManagedWorkerExecutor)


def test_injected_panels_use_screen_executor(action_context) -> None:
    panels = build_panels(action_context)
    screen = _TestableSettingsScreen(_FakeApp(), panels=panels)

    assert screen.panels[0].executor is screen.executor
    # Store-only actions keep running inline.
    assert not isinstance(screen.panels[0].action("uninstall").gate.executor, ManagedWorkerExecutor)


def test_requires_context_or_panels() -> None:
    screen = _TestableSettingsScreen(_FakeApp())
    with pytest.raises(RuntimeError, match="settings_context"):
        screen._ensure_panels()


def test_open_start_panel_selects_and_refreshes(action_context) -> None:
    screen = _screen(action_context, start_panel="tuning")

    screen.open_start_panel()

    assert screen.widgets["#settings-tabs"].active == "settings-tuning"
    assert screen.widgets["#panel-tuning"].refresh_calls == 1


def test_unknown_start_panel_falls_back_to_first(action_context) -> None:
    screen = _screen(action_context, start_panel="garage")

    screen.open_start_panel()

    assert screen.widgets["#settings-tabs"].active == "settings-device"
    assert screen.widgets["#panel-device"].refresh_calls == 1


def test_tab_actions(action_context) -> None:
    screen = _screen(action_context)
    tabs = screen.widgets["#settings-tabs"]

    screen.action_local_settings_tab_3()
    assert tabs.active == "settings-toggles"
    screen.action_local_settings_tab_6()
    assert tabs.active == "settings-tuning"


def test_tab_activation_refreshes_panel(action_context) -> None:
    screen = _screen(action_context)
    event = SimpleNamespace(
        tabbed_content=SimpleNamespace(id="settings-tabs"),
        pane=SimpleNamespace(id="settings-network"),
    )

    screen.on_tabbed_content_tab_activated(event)

    assert action_context.ui_state.active_panel == "network"
    assert screen.widgets["#panel-network"].refresh_calls == 1


def test_tab_activation_accepts_content_tab_ids(action_context) -> None:
    screen = _screen(action_context)
    event = SimpleNamespace(
        tabbed_content=SimpleNamespace(id="settings-tabs"),
        pane=None,
        tab=SimpleNamespace(id="--content-tab-settings-software"),
    )

    screen.on_tabbed_content_tab_activated(event)

    assert screen.widgets["#panel-software"].refresh_calls == 1


def test_foreign_tab_activation_ignored(action_context) -> None:
    screen = _screen(action_context)
    event = SimpleNamespace(tabbed_content=SimpleNamespace(id="other"), pane=SimpleNamespace(id="settings-network"))

    screen.on_tabbed_content_tab_activated(event)

    assert screen.widgets["#panel-network"].refresh_calls == 0
    assert action_context.ui_state.active_panel == "device"


def test_refresh_panel_uses_active_tab(action_context) -> None:
    screen = _screen(action_context)
    screen.widgets["#settings-tabs"].active = "settings-developer"

    screen.refresh_panel()
    screen.refresh_panel("missing")

    assert screen.widgets["#panel-developer"].refresh_calls == 1


def test_refresh_all(action_context) -> None:
    screen = _screen(action_context)
    screen.refresh_all()
    assert all(screen.widgets[f"#panel-{p.panel_id}"].refresh_calls == 1 for p in screen.panels)


def test_set_status_styles_errors(action_context) -> None:
    screen = _screen(action_context)
    status = screen.widgets["#settings-status"]

    screen._set_status("OpkrUIBrightness must be within [0, 100], got 105", True)
    assert isinstance(status.last, Text)
    assert status.last.plain == "OpkrUIBrightness must be within [0, 100], got 105"
    assert str(status.last.style) == "red"

    screen._set_status("Use Metric System: on", False)
    assert status.last.plain == "Use Metric System: on"


def test_status_message_from_panel(action_context) -> None:
    screen = _screen(action_context)

    screen.on_base_settings_tab_status_update(BaseSettingsTab.StatusUpdate("Reboot: done"))

    assert screen.widgets["#settings-status"].last.plain == "Reboot: done"


def test_sync_published_flags(action_context, store) -> None:
    store.put_bool("DebugUi1", True)
    store.put_bool("CommaStockUI", True)
    screen = _screen(action_context)

    screen.on_mount()

    assert action_context.ui_state.flag("debug_ui1") is True
    assert action_context.ui_state.flag("comma_stock_ui") is True
    assert action_context.ui_state.flag("debug_ui2") is False


def test_unmount_tears_down_panels(action_context) -> None:
    screen = _screen(action_context)

    screen.on_unmount()

    assert screen.app.cancelled == ["settings-screen"]
    assert all(not panel.coordinator.alive for panel in screen.panels)


def test_mount_attaches_app_watcher_to_injected_panels(action_context, tmp_path) -> None:
    panels = build_panels(action_context)
    app = _FakeApp(action_context)
    app.file_watcher = FileWatcher()
    screen = _TestableSettingsScreen(app, panels=panels)
    marker = tmp_path / "UpdateFailedCount"
    panels[3].coordinator.watch(marker, lambda _path: None)

    screen.on_mount()

    assert all(panel.coordinator.watcher is app.file_watcher for panel in panels)
    assert app.file_watcher.is_watching(marker)
