"""Tests for ManagedScreenMixin and the managed-worker action executor."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from opsettings.ui.tui.screens.base import ManagedScreenMixin, ManagedWorkerExecutor


class _FakeApp:
    """Minimal app double with managed lifecycle API stubs."""

    def __init__(self) -> None:
        self.started_workers: list[dict] = []
        self.cleared_workers: list[tuple[str, str]] = []
        self.cancelled_owners: list[str] = []
        self.ui_callbacks = 0
        self._cancel_results: dict = {}

    def start_managed_worker(self, *, owner, key, timeout_s, start, cancel_existing=True):
        self.started_workers.append(
            {"owner": owner, "key": key, "timeout_s": timeout_s, "cancel_existing": cancel_existing}
        )
        return start()

    def clear_managed_worker(self, *, owner, key):
        self.cleared_workers.append((owner, key))

    def cancel_managed_workers_for_owner(self, *, owner, reason):
        self.cancelled_owners.append(owner)
        return self._cancel_results

    def run_on_ui_thread(self, callback):
        self.ui_callbacks += 1
        callback()


class _FakeScreen(ManagedScreenMixin):
    """Test double combining mixin with minimal widget-like interface."""

    def __init__(self, app=None, widget_id: str = "") -> None:
        self._test_app = app
        self.id = widget_id
        self.run_worker_calls: list[dict] = []

    @property
    def app(self):
        return self._test_app

    def run_worker(self, work, thread=False, exit_on_error=True):
        self.run_worker_calls.append({"thread": thread, "exit_on_error": exit_on_error})
        # Run inline so tests observe the result synchronously.
        work()
        return SimpleNamespace(cancel=lambda: None)


class TestWorkerOwnerToken:
    def test_uses_widget_id_when_set(self) -> None:
        assert _FakeScreen(widget_id="settings-screen")._worker_owner_token() == "settings-screen"

    def test_falls_back_to_class_name(self) -> None:
        assert _FakeScreen(widget_id="")._worker_owner_token() == "_FakeScreen"


class TestStartManagedThreadWorker:
    def test_delegates_to_app(self) -> None:
        app = _FakeApp()
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        ran = []

        screen._start_managed_thread_worker(worker_key="action-1", work=lambda: ran.append(1), timeout_s=5.0)

        assert app.started_workers == [
            {"owner": "settings-screen", "key": "action-1", "timeout_s": 5.0, "cancel_existing": False}
        ]
        assert screen.run_worker_calls == [{"thread": True, "exit_on_error": False}]
        assert ran == [1]

    def test_falls_back_without_app(self) -> None:
        screen = _FakeScreen(app=None)
        screen._start_managed_thread_worker(worker_key="x", work=lambda: None, timeout_s=1.0)
        assert len(screen.run_worker_calls) == 1

    def test_requires_run_worker(self) -> None:
        class _NoWorkers(ManagedScreenMixin):
            app = None
            id = "bare"

        with pytest.raises(RuntimeError, match="cannot run workers"):
            _NoWorkers()._start_managed_thread_worker(worker_key="x", work=lambda: None, timeout_s=1.0)


class TestCancelManagedWorkers:
    def test_delegates_to_app(self) -> None:
        app = _FakeApp()
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        screen._cancel_managed_workers(reason="unmount")
        assert app.cancelled_owners == ["settings-screen"]

    def test_logs_warning_on_timeout(self, caplog) -> None:
        app = _FakeApp()
        app._cancel_results = {"action-1": False}
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        with caplog.at_level("WARNING", logger="opsettings"):
            screen._cancel_managed_workers(reason="unmount")
        assert any("timeout" in record.getMessage() for record in caplog.records)

    def test_noop_without_app(self) -> None:
        _FakeScreen(app=None)._cancel_managed_workers(reason="unmount")


class TestManagedWorkerExecutor:
    def test_delivers_status_on_ui_thread(self) -> None:
        app = _FakeApp()
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        executor = ManagedWorkerExecutor(screen, timeout_s=2.0)
        results = []

        executor.submit(lambda: 0, lambda status, error: results.append((status, error)))
        executor.submit(lambda: 3, lambda status, error: results.append((status, error)))

        assert results == [(0, None), (3, None)]
        assert app.ui_callbacks == 2
        assert [w["key"] for w in app.started_workers] == ["action-1", "action-2"]
        assert app.started_workers[0]["timeout_s"] == 2.0
        assert app.cleared_workers == [("settings-screen", "action-1"), ("settings-screen", "action-2")]

    def test_delivers_exceptions(self) -> None:
        app = _FakeApp()
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        results = []

        def _boom() -> int:
            raise OSError("script missing")

        ManagedWorkerExecutor(screen).submit(_boom, lambda status, error: results.append((status, error)))

        assert results[0][0] is None
        assert isinstance(results[0][1], OSError)

    def test_falls_back_to_call_from_thread(self) -> None:
        calls = []
        app = SimpleNamespace(call_from_thread=lambda fn: (calls.append("call_from_thread"), fn()))
        screen = _FakeScreen(app=app, widget_id="settings-screen")
        results = []

        ManagedWorkerExecutor(screen).submit(lambda: 0, lambda status, error: results.append(status))

        assert calls == ["call_from_thread"]
        assert results == [0]
