"""Shared base screen mixin for managed workers.

Screens register thread workers through the app's managed
lifecycle API so that unmounting a screen (or quitting the app) stops them.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Optional

from opsettings.logging import get_logger

logger = get_logger(__name__)


class ManagedScreenMixin:
    """Mixin providing worker lifecycle delegation for screen widgets.

    Concrete screens inherit from both ``Widget`` and this mixin:

        class MyScreen(ManagedScreenMixin, Widget):
            ...

    The host must provide ``self.app``, ``self.run_worker`` (provided by ``Widget``).
    """

    def _worker_owner_token(self) -> str:
        """Return a stable owner identifier for this screen."""
        widget_id = str(getattr(self, "id", "") or "").strip()
        if widget_id:
            return widget_id
        return self.__class__.__name__

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _start_managed_thread_worker(
        self,
        *,
        worker_key: str,
        work: Callable[[], Any],
        timeout_s: float,
    ) -> Any:
        """Run ``work`` in a Textual thread worker registered with the app.

        Falls back to an unmanaged ``run_worker`` when the app does not
        expose the managed API.
        """
        app_obj = getattr(self, "app", None)
        starter = getattr(app_obj, "start_managed_worker", None)
        run_worker_fn = getattr(self, "run_worker", None)
        if not callable(run_worker_fn):
            raise RuntimeError(f"{self._worker_owner_token()} cannot run workers")
        if callable(starter):
            return starter(
                owner=self._worker_owner_token(),
                key=worker_key,
                timeout_s=timeout_s,
                start=lambda: run_worker_fn(work, thread=True, exit_on_error=False),
                cancel_existing=False,
            )
        return run_worker_fn(work, thread=True, exit_on_error=False)

    def _cancel_managed_workers(self, *, reason: str) -> None:
        """Cancel all workers owned by this screen."""
        app_obj = getattr(self, "app", None)
        cancel_owner = getattr(app_obj, "cancel_managed_workers_for_owner", None)
        if not callable(cancel_owner):
            return
        try:
            results = cancel_owner(owner=self._worker_owner_token(), reason=reason)
        except Exception:
            logger.exception(
                "Failed to cancel managed workers for %s (%s).",
                self._worker_owner_token(),
                reason,
            )
            return
        if any(not bool(result) for result in results.values()):
            logger.warning("Worker shutdown hit timeout for owner '%s'.", self._worker_owner_token())


class ManagedWorkerExecutor:
    """Runs gated actions in managed thread workers owned by ``host``.

    Completion is marshalled back onto the UI thread before ``done`` runs.
    """

    def __init__(self, host: ManagedScreenMixin, *, timeout_s: float = 5.0) -> None:
        self._host = host
        self._timeout_s = timeout_s
        self._ids = itertools.count(1)

    def submit(
        self,
        fn: Callable[[], int],
        done: Callable[[Optional[int], Optional[BaseException]], None],
    ) -> None:
        key = f"action-{next(self._ids)}"
        app_obj = getattr(self._host, "app", None)

        def _deliver(status: Optional[int], error: Optional[BaseException]) -> None:
            def _complete() -> None:
                clear = getattr(app_obj, "clear_managed_worker", None)
                if callable(clear):
                    clear(owner=self._host._worker_owner_token(), key=key)
                done(status, error)

            runner = getattr(app_obj, "run_on_ui_thread", None)
            if callable(runner):
                runner(_complete)
            else:
                app_obj.call_from_thread(_complete)

        def _work() -> None:
            try:
                status = fn()
            except Exception as exc:
                _deliver(None, exc)
                return
            _deliver(status, None)

        self._host._start_managed_thread_worker(
            worker_key=key,
            work=_work,
            timeout_s=self._timeout_s,
        )
