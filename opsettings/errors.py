"""Error taxonomy shared by the settings surface.

None of these is fatal to the process: callers degrade the single control or
panel that raised and report the failure through the status line.
"""

from __future__ import annotations

from typing import Optional


class SettingsError(Exception):
    """Base class for settings-surface errors."""


class StoreUnavailable(SettingsError):
    """The parameter backend cannot be read or written."""


class InvalidInput(SettingsError, ValueError):
    """A value falls outside a control's declared domain."""


class ExternalActionFailed(SettingsError):
    """An invoked external command could not start or exited non-zero."""

    def __init__(self, message: str, *, exit_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.exit_status = exit_status


class MalformedPersistedBlob(SettingsError, ValueError):
    """A binary parameter could not be decoded."""
