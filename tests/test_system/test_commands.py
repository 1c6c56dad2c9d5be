from __future__ import annotations

import subprocess

import pytest

from opsettings.errors import ExternalActionFailed
from opsettings.system.commands import CommandDescriptor, CommandRunner, require_success


def test_from_argv_stringifies_arguments() -> None:
    command = CommandDescriptor.from_argv("reboot", ["sudo", 1])
    assert command.argv == ("sudo", "1")


def test_run_external_returns_exit_status(fake_run) -> None:
    fake_run.statuses["git"] = 3
    runner = CommandRunner(run_func=fake_run)

    status = runner.run_external(CommandDescriptor.from_argv("git_fetch", ["git", "fetch"]))

    assert status == 3
    assert fake_run.calls == [["git", "fetch"]]
    assert runner.history == ["git_fetch"]


def test_run_external_wraps_start_failures(fake_run) -> None:
    fake_run.errors["missing"] = FileNotFoundError("missing")
    runner = CommandRunner(run_func=fake_run)

    with pytest.raises(ExternalActionFailed, match="could not run"):
        runner.run_external(CommandDescriptor.from_argv("x", ["missing"]))


def test_run_external_wraps_timeouts(fake_run) -> None:
    fake_run.errors["slow"] = subprocess.TimeoutExpired(["slow"], 1)
    runner = CommandRunner(run_func=fake_run)

    with pytest.raises(ExternalActionFailed):
        runner.run_external(CommandDescriptor.from_argv("slow", ["slow"], timeout_s=1))


def test_empty_argv_rejected() -> None:
    runner = CommandRunner(run_func=lambda *a, **k: pytest.fail("should not run"))
    with pytest.raises(ExternalActionFailed, match="no argv"):
        runner.run_external(CommandDescriptor("empty", ()))


def test_spawn_detaches_process() -> None:
    calls = []

    def _popen(argv, **kwargs):
        calls.append((argv, kwargs))
        return object()

    runner = CommandRunner(popen_func=_popen)
    assert runner.spawn(CommandDescriptor.from_argv("viewer", ["viewer"])) == 0
    assert calls[0][0] == ["viewer"]
    assert calls[0][1]["start_new_session"] is True


def test_spawn_wraps_os_errors() -> None:
    def _popen(argv, **kwargs):
        raise PermissionError("denied")

    with pytest.raises(ExternalActionFailed, match="could not start"):
        CommandRunner(popen_func=_popen).spawn(CommandDescriptor.from_argv("viewer", ["viewer"]))


def test_require_success() -> None:
    command = CommandDescriptor.from_argv("git_fetch", ["git"])
    assert require_success(command, 0) == 0
    with pytest.raises(ExternalActionFailed) as excinfo:
        require_success(command, 128)
    assert excinfo.value.exit_status == 128
