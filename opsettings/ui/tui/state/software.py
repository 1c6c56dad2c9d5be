"""
Software panel: version labels and the check-for-update flow.

Checking for an update runs the fetch command in the background and then asks
whether to apply it. Completion is observed either from the fetch result or,
while offroad, from the ``LastUpdateTime`` watch; whichever comes first raises
the apply prompt. A positive ``UpdateFailedCount`` ends the check with an
error label.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from opsettings.config.models import SettingsConfig
from opsettings.logging import get_logger
from opsettings.params.store import ParamStore
from opsettings.system.commands import CommandDescriptor, CommandRunner, require_success

from .binding import is_offroad
from .gate import GateResult
from .panels import ActionSpec, PanelModel

logger = get_logger(__name__)

LAST_UPDATE_PARAM = "LastUpdateTime"
UPDATE_FAILED_PARAM = "UpdateFailedCount"
LAST_UPDATE_FORMAT = "%Y-%m-%d %H:%M:%S"
GITHUB_PREFIX = "https://github.com/"
COMMIT_PREFIX_LEN = 10

CHECK_ACTION = "check_update"
APPLY_ACTION = "apply_update"
CHECK_TEXT = "CHECK"
CHECKING_TEXT = "CHECKING"
FETCH_FAILED_TEXT = "failed to fetch update"

_UNITS = (
    (60 * 60 * 24 * 365, "year"),
    (60 * 60 * 24 * 30, "month"),
    (60 * 60 * 24 * 7, "week"),
    (60 * 60 * 24, "day"),
    (60 * 60, "hour"),
    (60, "minute"),
)


def time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    """Coarse relative time, e.g. ``"3 hours ago"``."""
    now = now or datetime.now()
    seconds = int((now - when).total_seconds())
    for size, unit in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "now"


def parse_last_update(raw: str) -> Optional[datetime]:
    text = raw.strip()[:19]
    if not text:
        return None
    try:
        return datetime.strptime(text, LAST_UPDATE_FORMAT)
    except ValueError:
        logger.debug("Unparseable %s value %r", LAST_UPDATE_PARAM, raw)
        return None


def git_remote_text(store: ParamStore) -> str:
    remote = store.get_str("GitRemote").strip()
    return remote[len(GITHUB_PREFIX):] if remote.startswith(GITHUB_PREFIX) else remote


def short_commit(store: ParamStore, key: str) -> str:
    return store.get_str(key).strip()[:COMMIT_PREFIX_LEN]


def update_prompt(store: ParamStore) -> str:
    """Confirmation text comparing the local and remote commits."""
    local = short_commit(store, "GitCommit")
    remote = short_commit(store, "GitCommitRemote")
    text = f"Local: {local}\nRemote: {remote}\n"
    if local == remote:
        return text + "Local and Remote match. No update required."
    return text + "An update is available. Click OK to apply."


class UpdateCheckFlow:
    """Drives the Check for Update button on the software panel."""

    def __init__(
        self,
        panel: PanelModel,
        runner: CommandRunner,
        config: SettingsConfig,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.panel = panel
        self.store = panel.store
        self.runner = runner
        self.config = config
        self.clock = clock
        self.busy = False
        self.failed = False
        self._prompted = False

    def watch_paths(self) -> tuple[Path, Path]:
        return (self.store.path_for(LAST_UPDATE_PARAM), self.store.path_for(UPDATE_FAILED_PARAM))

    def button_text(self) -> str:
        return CHECKING_TEXT if self.busy else CHECK_TEXT

    def last_update_text(self) -> str:
        if self.failed:
            return FETCH_FAILED_TEXT
        when = parse_last_update(self.store.get_str(LAST_UPDATE_PARAM))
        return time_ago(when, self.clock()) if when is not None else ""

    def register(self) -> None:
        """Add the check and apply actions to the panel."""
        self.panel.add_action(
            ActionSpec(
                action_id=CHECK_ACTION,
                title="Check for Update",
                button_text=CHECK_TEXT,
                run=self.fetch,
                on_start=self.start,
            ),
            button_text=self.button_text,
            enabled=lambda: not self.busy,
            on_result=self.on_fetch_result,
        )
        self.panel.add_action(
            ActionSpec(
                action_id=APPLY_ACTION,
                title="Apply Update",
                button_text="OK",
                run=self.pull,
                prompt=lambda: update_prompt(self.store),
                listed=False,
            )
        )

    def start(self) -> None:
        """Mark the check as running and, when offroad, watch for completion."""
        self.busy = True
        self.failed = False
        self._prompted = False
        if is_offroad(self.store):
            last_update, failed_count = self.watch_paths()
            self.panel.coordinator.watch(last_update, self.on_last_update)
            self.panel.coordinator.watch(failed_count, self.on_failed_count)

    def fetch(self) -> int:
        """Fetch the remote and stamp ``LastUpdateTime`` (worker thread)."""
        command = CommandDescriptor.from_argv("git_fetch", self.config.command("git_fetch"))
        status = require_success(command, self.runner.run_external(command))
        self.store.put(LAST_UPDATE_PARAM, self.clock().strftime(LAST_UPDATE_FORMAT))
        return status

    def pull(self) -> int:
        command = CommandDescriptor.from_argv("git_pull", self.config.command("git_pull"))
        return self.runner.run_external(command)

    def on_fetch_result(self, result: GateResult) -> None:
        if not result.ok:
            self.failed = True
            self._finish()
            return
        self._completed()

    def on_last_update(self, _path) -> None:
        self._completed()

    def on_failed_count(self, _path) -> None:
        if (self.store.get_int(UPDATE_FAILED_PARAM, 0) or 0) > 0:
            self.failed = True
            self._finish()

    def _completed(self) -> None:
        if not self.busy or self._prompted:
            return
        self._prompted = True
        self._finish()
        item = self.panel.action(APPLY_ACTION)
        self.panel.request_prompt(APPLY_ACTION, item.spec.pending())

    def _finish(self) -> None:
        self.busy = False
        for path in self.watch_paths():
            self.panel.coordinator.unwatch(path)
