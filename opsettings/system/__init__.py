"""Seams to the host system: external commands and file watches."""

from __future__ import annotations

from .commands import CommandDescriptor, CommandRunner, require_success
from .watcher import FileWatcher, file_signature

__all__ = [
    "CommandDescriptor",
    "CommandRunner",
    "FileWatcher",
    "file_signature",
    "require_success",
]
