from __future__ import annotations

from pathlib import Path

from opsettings.paths import (
    DEFAULT_PARAMS_DIR,
    PARAMS_DIR_ENV_VAR,
    get_params_dir,
)


def test_get_params_dir_override(tmp_path: Path) -> None:
    target = tmp_path / "params"
    assert get_params_dir(target) == target.resolve()


def test_get_params_dir_reads_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(PARAMS_DIR_ENV_VAR, str(tmp_path / "from-env"))
    assert get_params_dir() == (tmp_path / "from-env").resolve()


def test_get_params_dir_override_beats_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(PARAMS_DIR_ENV_VAR, str(tmp_path / "from-env"))
    assert get_params_dir(tmp_path / "explicit") == (tmp_path / "explicit").resolve()


def test_get_params_dir_default() -> None:
    assert get_params_dir() == DEFAULT_PARAMS_DIR.resolve()

