"""
Main TUI application for the settings surface.

Provides a terminal interface using Textual with:
- One tab per settings panel
- A file-watch poll timer that drives asynchronous refreshes
- An in-app log pane fed by the ``opsettings`` logger
"""

from __future__ import annotations

import logging
import sys
import threading
import time
import traceback
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.timer import Timer
from textual.widgets import Footer, Header, RichLog

from opsettings.config.models import SettingsConfig
from opsettings.errors import SettingsError
from opsettings.logging import exception_exc_info, format_exception_summary, get_logger
from opsettings.params.store import ParamStore
from opsettings.system.commands import CommandRunner
from opsettings.system.watcher import FileSignature, FileWatcher
from opsettings.ui.tui.state import ActionContext, UIState
from opsettings.ui.tui.state.binding import OFFROAD_PARAM, is_offroad

logger = get_logger(__name__)


class TUILogEvent(Message):
    """Queued log line from background logging threads."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__()


@dataclass
class _ManagedWorker:
    """Lifecycle metadata for an app-managed worker object."""

    owner: str
    key: str
    worker: Any
    timeout_s: float
    started_at: float = field(default_factory=time.monotonic)


@dataclass
class _ManagedTimer:
    """Lifecycle metadata for an app-managed timer object."""

    owner: str
    key: str
    timer: Timer


class SettingsApp(App):
    """
    Device settings TUI application.

    Owns the shared collaborators (parameter store, command runner, file
    watcher, UI state); panels and screens hold no settings state.
    """

    TITLE = "Settings"
    SUB_TITLE = "Device preferences"

    CSS_PATH = ["styles/settings.tcss"]

    _NOTIFY_TIMEOUT_SECONDS = 5.0
    _NOTIFY_ERROR_TIMEOUT_SECONDS = 10.0
    _DEFAULT_WORKER_TIMEOUT_SECONDS = 3.0
    _UI_ERROR_SUMMARY_MAX_LENGTH = 180
    _WATCH_OWNER = "app"

    BINDINGS = [
        Binding("ctrl+r", "refresh_panel", "Refresh", show=True),
        Binding("ctrl+l", "toggle_log", "Log", show=True),
        Binding("ctrl+c", "quit", "Quit", show=False),
        Binding("ctrl+d", "quit", "Quit", show=False),
    ]

    def __init__(
        self,
        config: SettingsConfig,
        *args: Any,
        store: Optional[ParamStore] = None,
        runner: Optional[CommandRunner] = None,
        watcher: Optional[FileWatcher] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the settings TUI application.

        Args:
            config: Validated settings configuration
            store: Parameter store override (defaults to ``config.params``)
            runner: External command runner override
            watcher: File watcher override
        """
        super().__init__(*args, **kwargs)
        self.config = config
        self.store = store or ParamStore(config.params.params_dir, create=config.params.create)
        self.runner = runner or CommandRunner()
        self.file_watcher = watcher or FileWatcher()
        self.ui_state = UIState(active_panel=config.ui.start_panel, offroad=self._read_offroad())
        self.settings_context = ActionContext(
            store=self.store,
            runner=self.runner,
            config=config,
            ui_state=self.ui_state,
        )
        self._ui_thread_id: int = threading.get_ident()
        self._strict_ui_thread_checks: bool = False
        self._managed_workers: dict[tuple[str, str], _ManagedWorker] = {}
        self._managed_workers_lock = threading.RLock()
        self._managed_timers: dict[tuple[str, str], _ManagedTimer] = {}
        self._managed_timers_lock = threading.RLock()
        self._recovering_ui_error: bool = False
        self._ui_error_count: int = 0
        self._tui_log_buffer: deque[str] = deque(maxlen=500)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header(show_clock=True, icon="")

        from opsettings.ui.tui.screens.settings import SettingsScreen

        yield SettingsScreen(id="settings-screen", start_panel=self.config.ui.start_panel)
        yield RichLog(id="settings-log", max_lines=500, wrap=True)
        yield Footer()

    def on_mount(self) -> None:
        """Route logs into the app and start watching the store."""
        self._ui_thread_id = threading.get_ident()
        self._setup_tui_logging()
        logger.info("Settings TUI mounted (params: %s)", self.store.root)
        self.start_managed_timer(
            owner=self._WATCH_OWNER,
            key="watch-poll",
            start=lambda: self.set_interval(self.config.ui.watch_interval_s, self._poll_watcher),
        )
        self.file_watcher.watch(self.store.path_for(OFFROAD_PARAM), self._on_offroad_changed)
        if not self.store.is_available():
            logger.warning("Parameter store not found at %s", self.store.data_dir)
            self.notify_event(f"Parameter store unavailable: {self.store.data_dir}", severity="warning")

    # -------------------------------------------------------------------------
    # Store watching
    # -------------------------------------------------------------------------

    def _read_offroad(self) -> bool:
        try:
            return is_offroad(self.store)
        except SettingsError as exc:
            logger.warning("Cannot read %s: %s", OFFROAD_PARAM, format_exception_summary(exc))
            return True

    def _poll_watcher(self) -> None:
        self.file_watcher.poll()

    def _on_offroad_changed(self, _path: Path, _signature: FileSignature) -> None:
        offroad = self._read_offroad()
        if offroad == self.ui_state.offroad:
            return
        self.ui_state.set_offroad(offroad)
        logger.info("Device is now %s", "offroad" if offroad else "onroad")
        self._refresh_settings_screen()

    def _settings_screen(self) -> Any:
        try:
            return self.query_one("#settings-screen")
        except Exception:
            return None

    def _refresh_settings_screen(self) -> None:
        screen = self._settings_screen()
        refresh = getattr(screen, "refresh_panel", None)
        if callable(refresh):
            refresh()

    # -------------------------------------------------------------------------
    # Logging and thread marshalling
    # -------------------------------------------------------------------------

    def _setup_tui_logging(self) -> None:
        """Route opsettings logs to the log pane while the TUI runs."""
        root_logger = logging.getLogger("opsettings")
        root_logger.propagate = False

        streams_to_remove = {sys.stdout, sys.stderr, sys.__stdout__, sys.__stderr__}
        for handler in list(root_logger.handlers):
            if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) in streams_to_remove:
                root_logger.removeHandler(handler)

        class _TUILogHandler(logging.Handler):
            def __init__(self, app_instance: "SettingsApp") -> None:
                super().__init__()
                self._app = app_instance
                self._tui_handler = True

            def emit(self, record: logging.LogRecord) -> None:
                try:
                    message = self.format(record)
                    self._app._tui_log_buffer.append(message)
                    self._app.post_ui_message(TUILogEvent(message), source="logging")
                except Exception:
                    # Never log from inside the log handler.
                    try:
                        sys.stderr.write(f"[TUILogHandler] failed to deliver: {record.getMessage()}\n")
                    except Exception:
                        pass

        if not any(getattr(h, "_tui_handler", False) for h in root_logger.handlers):
            handler = _TUILogHandler(self)
            handler.setLevel(root_logger.level)
            handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            root_logger.addHandler(handler)

    def _write_tui_log(self, message: str) -> None:
        self.assert_ui_thread(action="_write_tui_log")
        try:
            self.query_one("#settings-log", RichLog).write(message)
        except Exception:
            return

    def on_tuilog_event(self, message: TUILogEvent) -> None:
        """Handle queued log events on the UI thread."""
        self._write_tui_log(message.message)

    def post_ui_message(self, message: Message, *, source: str = "unknown") -> None:
        """Queue a Textual message to this app from any thread.

        ``post_message`` is already thread-safe, so it is called directly
        rather than blocking on ``call_from_thread``.
        """
        _ = source
        self.post_message(message)

    def run_on_ui_thread(self, callback: Callable[[], Any]) -> None:
        """Run a callback on the app UI thread from either same or worker thread."""
        try:
            self.call_from_thread(callback)
        except RuntimeError as exc:
            # Textual raises this when already on the app thread.
            if "must run in a different thread" in str(exc):
                callback()
                return
            raise

    def assert_ui_thread(self, *, action: str = "") -> bool:
        """
        Detect unsafe off-thread UI mutation attempts.

        Returns:
            True when running on the UI thread.
        """
        current_id = threading.get_ident()
        if current_id == self._ui_thread_id:
            return True
        detail = f" during {action}" if action else ""
        message = (
            "Off-thread UI mutation attempt detected"
            f"{detail}: current_thread={current_id}, ui_thread={self._ui_thread_id}"
        )
        logger.error(message)
        if self._strict_ui_thread_checks:
            raise RuntimeError(message)
        return False

    # -------------------------------------------------------------------------
    # Managed workers and timers
    # -------------------------------------------------------------------------

    def _normalize_worker_token(self, value: str, *, fallback: str) -> str:
        normalized = str(value or "").strip()
        return normalized or fallback

    def _normalize_worker_timeout(self, timeout_s: Optional[float]) -> float:
        try:
            parsed = self._DEFAULT_WORKER_TIMEOUT_SECONDS if timeout_s is None else float(timeout_s)
        except (TypeError, ValueError):
            parsed = self._DEFAULT_WORKER_TIMEOUT_SECONDS
        return max(0.05, parsed)

    def start_managed_worker(
        self,
        *,
        owner: str,
        key: str,
        start: Callable[[], Any],
        timeout_s: Optional[float] = None,
        cancel_existing: bool = True,
    ) -> Any:
        """Start and register a worker with standardized cancellation semantics."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        key_token = self._normalize_worker_token(key, fallback="worker")
        timeout_value = self._normalize_worker_timeout(timeout_s)
        if cancel_existing:
            self.cancel_managed_worker(owner=owner_token, key=key_token, reason="replaced")
        worker = start()
        if worker is None:
            return None
        with self._managed_workers_lock:
            self._managed_workers[(owner_token, key_token)] = _ManagedWorker(
                owner=owner_token,
                key=key_token,
                worker=worker,
                timeout_s=timeout_value,
            )
        return worker

    def clear_managed_worker(self, *, owner: str, key: str) -> None:
        """Remove a worker from lifecycle tracking without cancelling it."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        key_token = self._normalize_worker_token(key, fallback="worker")
        with self._managed_workers_lock:
            self._managed_workers.pop((owner_token, key_token), None)

    def cancel_managed_worker(self, *, owner: str, key: str, reason: str = "") -> bool:
        """Cancel a managed worker; thread workers finish cooperatively."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        key_token = self._normalize_worker_token(key, fallback="worker")
        with self._managed_workers_lock:
            record = self._managed_workers.pop((owner_token, key_token), None)
        if record is None:
            return True
        elapsed = time.monotonic() - record.started_at
        if elapsed > record.timeout_s:
            logger.warning(
                "Worker %s:%s ran %.1fs past its %.1fs timeout%s",
                owner_token,
                key_token,
                elapsed - record.timeout_s,
                record.timeout_s,
                f" ({reason})" if reason else "",
            )
        cancel_fn = getattr(record.worker, "cancel", None)
        if not callable(cancel_fn):
            return True
        try:
            cancel_fn()
        except Exception:
            logger.exception(
                "Failed to cancel worker %s:%s%s",
                owner_token,
                key_token,
                f" ({reason})" if reason else "",
            )
            return False
        return True

    def cancel_managed_workers_for_owner(self, *, owner: str, reason: str = "") -> dict[str, bool]:
        """Cancel all workers registered for a screen/owner."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        with self._managed_workers_lock:
            keys = [key for (worker_owner, key) in self._managed_workers if worker_owner == owner_token]
        return {key: self.cancel_managed_worker(owner=owner_token, key=key, reason=reason) for key in keys}

    def shutdown_managed_workers(self, *, reason: str = "") -> dict[str, bool]:
        """Cancel all tracked workers during app shutdown."""
        with self._managed_workers_lock:
            worker_keys = list(self._managed_workers.keys())
        return {
            f"{owner}:{key}": self.cancel_managed_worker(owner=owner, key=key, reason=reason)
            for owner, key in worker_keys
        }

    def start_managed_timer(
        self,
        *,
        owner: str,
        key: str,
        start: Callable[[], Optional[Timer]],
        restart: bool = True,
    ) -> Optional[Timer]:
        """Start and register a timer with idempotent restart semantics."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        key_token = self._normalize_worker_token(key, fallback="timer")
        if restart:
            self.stop_managed_timer(owner=owner_token, key=key_token, reason="replaced")
        timer = start()
        if timer is None:
            return None
        with self._managed_timers_lock:
            self._managed_timers[(owner_token, key_token)] = _ManagedTimer(
                owner=owner_token,
                key=key_token,
                timer=timer,
            )
        return timer

    def stop_managed_timer(self, *, owner: str, key: str, reason: str = "") -> bool:
        """Stop a managed timer, returning True when stop succeeds."""
        owner_token = self._normalize_worker_token(owner, fallback="app")
        key_token = self._normalize_worker_token(key, fallback="timer")
        with self._managed_timers_lock:
            record = self._managed_timers.pop((owner_token, key_token), None)
        if record is None:
            return True
        try:
            record.timer.stop()
            return True
        except Exception:
            logger.exception(
                "Failed to stop timer %s:%s%s",
                owner_token,
                key_token,
                f" ({reason})" if reason else "",
            )
            return False

    def shutdown_managed_timers(self, *, reason: str = "") -> dict[str, bool]:
        """Stop all tracked timers during app shutdown."""
        with self._managed_timers_lock:
            timer_keys = list(self._managed_timers.keys())
        return {
            f"{owner}:{key}": self.stop_managed_timer(owner=owner, key=key, reason=reason)
            for owner, key in timer_keys
        }

    # -------------------------------------------------------------------------
    # UI error boundary
    # -------------------------------------------------------------------------

    def _is_recoverable_ui_exception(self, error: Exception) -> bool:
        """Return True when an exception originated from a settings screen or widget."""
        tb = error.__traceback__
        if tb is None:
            return False
        try:
            frames = traceback.extract_tb(tb)
        except Exception:
            return False
        for frame in frames:
            filename = str(getattr(frame, "filename", "")).replace("\\", "/").lower()
            if "opsettings/ui/tui/screens/" in filename or "opsettings/ui/tui/widgets/" in filename:
                return True
        return False

    def _present_recoverable_ui_error(self, error: Exception) -> None:
        """Report a recoverable UI error and keep the app running."""
        self._ui_error_count += 1
        error_id = self._ui_error_count
        summary = format_exception_summary(error, max_length=self._UI_ERROR_SUMMARY_MAX_LENGTH)
        logger.error("Recoverable UI screen exception #%s", error_id, exc_info=exception_exc_info(error))
        try:
            self.notify_event(f"Recovered from screen error #{error_id}: {summary}", severity="error")
        except Exception:
            logger.exception("Failed to emit recoverable UI error notification.")
        self._refresh_settings_screen()

    def _handle_exception(self, error: Exception) -> None:
        """Handle unhandled exceptions with recoverable screen-level boundary."""
        if self._recovering_ui_error:
            super()._handle_exception(error)
            return
        if self._is_recoverable_ui_exception(error):
            self._recovering_ui_error = True
            try:
                self._present_recoverable_ui_error(error)
            finally:
                self._recovering_ui_error = False
            return
        super()._handle_exception(error)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def action_refresh_panel(self) -> None:
        """Re-read the active panel from the store."""
        self._refresh_settings_screen()

    def action_toggle_log(self) -> None:
        try:
            log_widget = self.query_one("#settings-log", RichLog)
        except Exception:
            return
        log_widget.display = not log_widget.display

    def action_quit(self) -> None:
        """Quit the application."""
        self._force_quit()

    def _force_quit(self) -> None:
        """Unconditionally quit the application."""
        logger.info("User requested quit")
        self.shutdown_managed_timers(reason="app-quit")
        self.shutdown_managed_workers(reason="app-quit")
        self.file_watcher.clear()
        self.exit()

    def notify_event(
        self,
        message: str,
        *,
        severity: Literal["info", "warning", "error"] = "info",
        timeout: Optional[float] = None,
    ) -> None:
        """Emit and record a UI notification event."""
        self.assert_ui_thread(action="notify_event")
        effective_timeout = timeout
        if effective_timeout is None:
            effective_timeout = (
                self._NOTIFY_ERROR_TIMEOUT_SECONDS if severity == "error" else self._NOTIFY_TIMEOUT_SECONDS
            )
        self.ui_state.push_notification(message, severity=severity)
        self.notify(message, severity=severity, timeout=effective_timeout)


def run_tui(config: SettingsConfig) -> int:
    """
    Run the TUI application.

    Args:
        config: Settings configuration

    Returns:
        Exit code (0 for success)
    """
    app = SettingsApp(config)
    app.run()
    return 0
