"""Process-wide UI state: published display flags and notifications."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Literal, Mapping, Optional

Severity = Literal["info", "warning", "error"]
FlagListener = Callable[[str, bool], None]


@dataclass(frozen=True)
class Notification:
    """Single UI notification event."""

    message: str
    severity: Severity = "info"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class UIStateSnapshot:
    """Immutable snapshot of shared UI state."""

    active_panel: str
    offroad: bool
    flags: Mapping[str, bool]
    notifications: tuple[Notification, ...]


class UIState:
    """Typed mutable container for state shared across panels and views.

    Bindings publish derived flags (for example ``debug_ui1``) here so that a
    separate rendering surface can consume them; this is the only place such
    flags are written.
    """

    MAX_NOTIFICATIONS = 100

    def __init__(self, *, active_panel: str = "device", offroad: bool = True) -> None:
        self._active_panel = active_panel
        self._offroad = offroad
        self._flags: dict[str, bool] = {}
        self._listeners: list[FlagListener] = []
        self._notifications: deque[Notification] = deque(maxlen=self.MAX_NOTIFICATIONS)

    @property
    def active_panel(self) -> str:
        return self._active_panel

    @property
    def offroad(self) -> bool:
        return self._offroad

    @property
    def flags(self) -> dict[str, bool]:
        return dict(self._flags)

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._notifications)

    def snapshot(self) -> UIStateSnapshot:
        """Return an immutable snapshot of current UI state."""
        return UIStateSnapshot(
            active_panel=self._active_panel,
            offroad=self._offroad,
            flags=dict(self._flags),
            notifications=tuple(self._notifications),
        )

    def set_active_panel(self, panel_id: str) -> None:
        self._active_panel = panel_id

    def set_offroad(self, offroad: bool) -> None:
        self._offroad = bool(offroad)

    def flag(self, name: str, default: bool = False) -> bool:
        return self._flags.get(name, default)

    def publish(self, name: str, value: bool) -> None:
        """Set a derived flag and notify listeners when it changes."""
        value = bool(value)
        previous = self._flags.get(name)
        self._flags[name] = value
        if previous == value:
            return
        for listener in list(self._listeners):
            listener(name, value)

    def publish_many(self, names: Iterable[str], value: bool) -> None:
        for name in names:
            self.publish(name, value)

    def subscribe(self, listener: FlagListener) -> Callable[[], None]:
        """Register a flag listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def push_notification(self, message: str, *, severity: Severity = "info") -> Notification:
        notification = Notification(message=message, severity=severity)
        self._notifications.append(notification)
        return notification

    def last_notification(self) -> Optional[Notification]:
        return self._notifications[-1] if self._notifications else None

    def clear_notifications(self) -> None:
        self._notifications.clear()

    def drain_notifications(self) -> list[Notification]:
        items = list(self._notifications)
        self._notifications.clear()
        return items
