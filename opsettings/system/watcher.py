"""
Polling file watcher.

Each ``poll()`` compares the current ``stat()`` signature of every watched path
against the last one seen and invokes the callback for paths that changed.
The host drives ``poll()`` from a UI timer, so callbacks run on the UI thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from opsettings.logging import get_logger

logger = get_logger(__name__)

FileSignature = Optional[tuple[int, int, int]]
WatchCallback = Callable[[Path, FileSignature], None]


def file_signature(path: Path) -> FileSignature:
    """Return ``(mtime_ns, size, inode)`` for ``path``, or None when absent."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    except OSError:
        logger.debug("Cannot stat watched path %s", path)
        return None
    return (st.st_mtime_ns, st.st_size, st.st_ino)


@dataclass
class _Watch:
    path: Path
    callback: WatchCallback
    signature: FileSignature


class FileWatcher:
    """Watches individual files for modification."""

    def __init__(self) -> None:
        self._watches: dict[Path, _Watch] = {}

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._watches)

    def is_watching(self, path: Path | str) -> bool:
        return Path(path) in self._watches

    def watch(self, path: Path | str, callback: WatchCallback) -> None:
        """Start watching ``path``; replaces any existing callback."""
        target = Path(path)
        self._watches[target] = _Watch(target, callback, file_signature(target))
        logger.debug("Watching %s", target)

    def unwatch(self, path: Path | str) -> None:
        target = Path(path)
        if self._watches.pop(target, None) is not None:
            logger.debug("Stopped watching %s", target)

    def clear(self) -> None:
        self._watches.clear()

    def poll(self) -> list[Path]:
        """Fire callbacks for changed paths and return them."""
        changed: list[Path] = []
        for path, entry in list(self._watches.items()):
            current = file_signature(path)
            if current == entry.signature:
                continue
            entry.signature = current
            if current is None:
                # Deletion is not a completion signal.
                continue
            changed.append(path)
            try:
                entry.callback(path, current)
            except Exception:
                logger.exception("Watch callback failed for %s", path)
        return changed
