"""Startup smoke tests for the settings TUI.

Verifies that SettingsApp can go through init/compose/mount wiring
without crashing against an empty parameter store.
"""

from __future__ import annotations

import inspect

import pytest

pytest.importorskip("textual")

pytestmark = pytest.mark.tui_slow


class TestStartupSmoke:
    """Verify SettingsApp starts without exceptions."""

    def test_init_no_exception(self, config) -> None:
        from opsettings.ui.tui.app import SettingsApp

        app = SettingsApp(config)
        assert app.config is config
        assert app.file_watcher.paths == ()
        assert app._managed_workers == {}

    def test_compose_references_expected_widgets(self) -> None:
        from opsettings.ui.tui.app import SettingsApp

        source = inspect.getsource(SettingsApp.compose)

        assert "SettingsScreen" in source
        assert 'id="settings-screen"' in source
        assert 'id="settings-log"' in source
        assert "Header" in source
        assert "Footer" in source

    def test_on_mount_survives_missing_store(self, tmp_path, monkeypatch) -> None:
        from opsettings.config import default_config
        from opsettings.ui.tui.app import SettingsApp

        app = SettingsApp(default_config(params_dir=tmp_path / "nowhere"))
        monkeypatch.setattr(app, "_setup_tui_logging", lambda: None)
        monkeypatch.setattr(app, "set_interval", lambda *_a, **_kw: None)
        monkeypatch.setattr(app, "notify", lambda *_a, **_kw: None)

        app.on_mount()

        assert app.ui_state.offroad is True
        assert app.file_watcher.poll() == []


class TestScreenImportSmoke:
    """Verify screen and widget classes import cleanly."""

    def test_screen_classes_importable(self) -> None:
        from opsettings.ui.tui.screens.confirm import ConfirmDialog
        from opsettings.ui.tui.screens.settings import SettingsScreen
        from opsettings.ui.tui.widgets.settings_panel import SettingsPanel

        assert ConfirmDialog is not None
        assert SettingsScreen is not None
        assert SettingsPanel is not None

    def test_settings_screen_compose_has_tabs(self) -> None:
        from opsettings.ui.tui.screens.settings import SettingsScreen

        source = inspect.getsource(SettingsScreen.compose)
        assert "settings-tabs" in source
        assert "settings-status" in source
        assert "SettingsPanel" in source

    def test_stylesheet_ships_with_package(self) -> None:
        from pathlib import Path

        import opsettings.ui.tui.app as app_module

        css = Path(app_module.__file__).parent / "styles" / "settings.tcss"
        assert css.exists()
        assert "#settings-tabs" in css.read_text(encoding="utf-8")
