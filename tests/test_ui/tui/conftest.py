"""TUI-specific pytest configuration and fixtures.

This module provides:
- Test speed markers (tui_fast, tui_slow)
- A factory for app instances that never enter the Textual run loop
- Restoration of the ``opsettings`` logger after tests that reroute it

Usage::

    @pytest.mark.tui_fast
    def test_something(tui_app_factory):
        app = tui_app_factory()
        ...
"""

from __future__ import annotations

import logging

import pytest


def pytest_configure(config):
    """Register TUI test markers."""
    config.addinivalue_line(
        "markers",
        "tui_fast: Fast unit tests with fakes, no app lifecycle (<100ms)",
    )
    config.addinivalue_line(
        "markers",
        "tui_slow: Slower tests that exercise mount wiring or timers",
    )


@pytest.fixture
def tui_app_factory(config, store, runner):
    """Factory for SettingsApp instances bound to the test parameter store.

    The app is constructed but never run; ``on_mount`` and friends are
    called directly by the tests that need them.
    """
    from opsettings.ui.tui.app import SettingsApp

    def _create_app(**overrides):
        kwargs = {"store": store, "runner": runner}
        kwargs.update(overrides)
        return SettingsApp(config, **kwargs)

    return _create_app


@pytest.fixture(autouse=True)
def _restore_opsettings_logger():
    """Undo handler and propagation changes made by the TUI log router."""
    root = logging.getLogger("opsettings")
    handlers, propagate = list(root.handlers), root.propagate
    yield
    root.handlers[:] = handlers
    root.propagate = propagate
