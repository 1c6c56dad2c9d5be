"""
Shared pytest fixtures for opsettings tests.

Every fixture works against a throwaway parameter store under ``tmp_path``;
external commands never run, they are recorded by ``FakeRun``.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List

import pytest

from opsettings.config import default_config
from opsettings.config.models import SettingsConfig
from opsettings.params.store import ParamStore
from opsettings.system.commands import CommandRunner
from opsettings.ui.tui.state import ActionContext, UIState


class FakeRun:
    """Stand-in for ``subprocess.run`` that records argv lists."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.statuses: Dict[str, int] = {}
        self.errors: Dict[str, Exception] = {}

    def __call__(self, argv, **_kwargs):
        self.calls.append(list(argv))
        program = argv[0]
        if program in self.errors:
            raise self.errors[program]
        return subprocess.CompletedProcess(argv, self.statuses.get(program, 0))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPSETTINGS_PARAMS_DIR", raising=False)
    monkeypatch.delenv("OPSETTINGS_HARDWARE", raising=False)


@pytest.fixture
def params_dir(tmp_path: Path) -> Path:
    """Store root with an empty ``d/`` directory."""
    root = tmp_path / "params"
    (root / "d").mkdir(parents=True)
    return root


@pytest.fixture
def store(params_dir: Path) -> ParamStore:
    return ParamStore(params_dir)


@pytest.fixture
def ui_state() -> UIState:
    return UIState()


@pytest.fixture
def config(params_dir: Path) -> SettingsConfig:
    cfg = default_config(params_dir=params_dir)
    cfg.ui.reboot_delay_s = 0.0
    return cfg


@pytest.fixture
def fake_run() -> FakeRun:
    return FakeRun()


@pytest.fixture
def runner(fake_run: FakeRun) -> CommandRunner:
    return CommandRunner(run_func=fake_run)


@pytest.fixture
def action_context(store, runner, config, ui_state) -> ActionContext:
    return ActionContext(
        store=store,
        runner=runner,
        config=config,
        ui_state=ui_state,
        sleep=lambda _seconds: None,
    )
