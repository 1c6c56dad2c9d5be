"""
Refresh coordination for one settings panel.

The coordinator re-derives every control and label from the parameter store
when a panel becomes visible, re-renders dependents after a change, and owns
the panel's file-watch registrations. Callbacks arriving after ``teardown()``
are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from opsettings.errors import SettingsError
from opsettings.logging import format_exception_summary, get_logger
from opsettings.system.watcher import FileSignature, FileWatcher

from .binding import UNAVAILABLE_TEXT, ControlBinding, DisplayValue

logger = get_logger(__name__)

LabelProvider = Callable[[], str]
RefreshListener = Callable[[dict[str, object]], None]
WatchCallback = Callable[[Path], None]


@dataclass
class WatchTarget:
    """A watched file plus the callback to run when it changes."""

    path: Path
    callback: WatchCallback
    last_signature: FileSignature = None
    fired: int = 0


class RefreshCoordinator:
    """Keeps a panel's rendered values in sync with the store."""

    def __init__(self, owner: str, *, watcher: Optional[FileWatcher] = None) -> None:
        self.owner = owner
        self._watcher = watcher
        self._bindings: dict[str, ControlBinding] = {}
        self._labels: dict[str, LabelProvider] = {}
        self._targets: dict[Path, WatchTarget] = {}
        self._listeners: list[RefreshListener] = []
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def watcher(self) -> Optional[FileWatcher]:
        return self._watcher

    @property
    def watch_targets(self) -> tuple[WatchTarget, ...]:
        return tuple(self._targets.values())

    def attach_watcher(self, watcher: Optional[FileWatcher]) -> None:
        """Route watch registrations through ``watcher`` (re-registers targets)."""
        if self._watcher is not None:
            for path in self._targets:
                self._watcher.unwatch(path)
        self._watcher = watcher
        if watcher is not None:
            for target in self._targets.values():
                watcher.watch(target.path, self.notify)

    def add_binding(self, binding: ControlBinding) -> None:
        self._bindings[binding.control_id] = binding

    def add_label(self, label_id: str, provider: LabelProvider) -> None:
        self._labels[label_id] = provider

    def subscribe(self, listener: RefreshListener) -> None:
        """Receive refreshed values after a watch callback runs."""
        self._listeners.append(listener)

    def _render_label(self, label_id: str) -> str:
        try:
            return self._labels[label_id]()
        except SettingsError as exc:
            logger.warning(
                "Label %s on %s unavailable: %s", label_id, self.owner, format_exception_summary(exc)
            )
            return UNAVAILABLE_TEXT

    def refresh_visible(self) -> dict[str, object]:
        """Re-read every binding and label; returns ``{id: value}``."""
        values: dict[str, object] = {}
        if not self._alive:
            return values
        for control_id, binding in self._bindings.items():
            values[control_id] = binding.render()
        for label_id in self._labels:
            values[label_id] = self._render_label(label_id)
        return values

    def refresh_dependents(self, keys: Iterable[str]) -> dict[str, DisplayValue]:
        """Re-render bindings that read any of ``keys``."""
        changed = set(keys)
        values: dict[str, DisplayValue] = {}
        if not self._alive or not changed:
            return values
        for control_id, binding in self._bindings.items():
            if changed.intersection(binding.descriptor.depends_on):
                values[control_id] = binding.render()
        return values

    def watch(self, path: Path | str, callback: WatchCallback) -> WatchTarget:
        target_path = Path(path)
        target = WatchTarget(path=target_path, callback=callback)
        self._targets[target_path] = target
        if self._watcher is not None:
            self._watcher.watch(target_path, self.notify)
        logger.debug("%s watching %s", self.owner, target_path)
        return target

    def unwatch(self, path: Path | str) -> None:
        target_path = Path(path)
        if self._targets.pop(target_path, None) is None:
            return
        if self._watcher is not None:
            self._watcher.unwatch(target_path)

    def is_watching(self, path: Path | str) -> bool:
        return Path(path) in self._targets

    def notify(self, path: Path | str, signature: FileSignature) -> bool:
        """Deliver a change notification; returns True when the callback ran."""
        if not self._alive:
            return False
        target = self._targets.get(Path(path))
        if target is None:
            return False
        if signature is not None and signature == target.last_signature:
            return False
        target.last_signature = signature
        target.fired += 1
        target.callback(target.path)
        if self._alive and self._listeners:
            values = self.refresh_visible()
            for listener in list(self._listeners):
                listener(values)
        return True

    def teardown(self) -> None:
        """Unregister every watch target, then stop accepting callbacks."""
        for path in list(self._targets):
            self.unwatch(path)
        self._listeners.clear()
        self._alive = False
        logger.debug("%s refresh coordinator torn down", self.owner)
