"""
External command invocation.

The settings surface never interprets command output; it only needs to know
whether a command started and, for commands it waits on, its exit status.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from opsettings.errors import ExternalActionFailed
from opsettings.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandDescriptor:
    """A named external command."""

    name: str
    argv: tuple[str, ...]
    timeout_s: Optional[float] = None

    @classmethod
    def from_argv(cls, name: str, argv: Sequence[str], timeout_s: Optional[float] = None) -> "CommandDescriptor":
        return cls(name=name, argv=tuple(str(arg) for arg in argv), timeout_s=timeout_s)


@dataclass
class CommandRunner:
    """Runs command descriptors out-of-process."""

    run_func: Callable[..., subprocess.CompletedProcess] = subprocess.run
    popen_func: Callable[..., subprocess.Popen] = subprocess.Popen
    history: list[str] = field(default_factory=list)

    def run_external(self, command: CommandDescriptor) -> int:
        """
        Run ``command`` to completion and return its exit status.

        Must be called off the UI thread.

        Raises:
            ExternalActionFailed: If the command cannot be started or times out.
        """
        if not command.argv:
            raise ExternalActionFailed(f"Command '{command.name}' has no argv")
        logger.info("Running %s: %s", command.name, " ".join(command.argv))
        self.history.append(command.name)
        try:
            proc = self.run_func(
                list(command.argv),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=command.timeout_s,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise ExternalActionFailed(f"{command.name} could not run: {exc}") from exc
        if proc.returncode != 0:
            logger.warning("%s exited with status %s", command.name, proc.returncode)
        return int(proc.returncode)

    def spawn(self, command: CommandDescriptor) -> int:
        """
        Start ``command`` without waiting for it; returns 0 once started.

        Raises:
            ExternalActionFailed: If the process cannot be started.
        """
        if not command.argv:
            raise ExternalActionFailed(f"Command '{command.name}' has no argv")
        logger.info("Spawning %s: %s", command.name, " ".join(command.argv))
        self.history.append(command.name)
        try:
            self.popen_func(
                list(command.argv),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise ExternalActionFailed(f"{command.name} could not start: {exc}") from exc
        return 0


def require_success(command: CommandDescriptor, exit_status: int) -> int:
    """Raise ExternalActionFailed for a non-zero ``exit_status``."""
    if exit_status != 0:
        raise ExternalActionFailed(
            f"{command.name} failed with exit status {exit_status}",
            exit_status=exit_status,
        )
    return exit_status
