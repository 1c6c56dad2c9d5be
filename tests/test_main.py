from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

import opsettings.__main__ as opsettings_main
from opsettings.params.calibration import CALIBRATION_PARAM, encode_calibration


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(opsettings_main, "configure_logging_from_args", lambda **kwargs: None)
    monkeypatch.setattr(opsettings_main, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")


def test_main_missing_config_returns_1(tmp_path: Path, capsys) -> None:
    missing = tmp_path / "missing.yaml"

    code = opsettings_main.main(["--config", str(missing)])
    err = capsys.readouterr().err
    assert code == 1
    assert "Configuration file not found" in err


def test_main_invalid_config_returns_1(tmp_path: Path, capsys) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("device:\n  hardware: toaster\n", encoding="utf-8")

    code = opsettings_main.main(["--config", str(cfg_file)])
    assert code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_main_runs_tui_when_no_command(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("{}", encoding="utf-8")
    fake_config = SimpleNamespace()
    seen = []

    def _fake_load(path, *, params_dir=None):
        seen.append((path, params_dir))
        return fake_config

    monkeypatch.setattr("opsettings.config.load_config_from_file", _fake_load)
    monkeypatch.setattr("opsettings.ui.tui.app.run_tui", lambda cfg: 7 if cfg is fake_config else 0)

    code = opsettings_main.main(["--config", str(cfg_file)])
    assert code == 7
    assert seen[0][0] == cfg_file.resolve()


def test_main_uses_defaults_without_config_file(params_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def _fake_run_tui(cfg):
        captured["config"] = cfg
        return 0

    monkeypatch.setattr("opsettings.ui.tui.app.run_tui", _fake_run_tui)

    assert opsettings_main.main(["--params-dir", str(params_dir)]) == 0
    assert captured["config"].params.params_dir == params_dir.resolve()


def test_param_set_get_remove(params_dir: Path, capsys) -> None:
    base = ["--params-dir", str(params_dir), "param"]

    assert opsettings_main.main([*base, "set", "IsMetric", "1"]) == 0
    assert (params_dir / "d" / "IsMetric").read_bytes() == b"1"

    assert opsettings_main.main([*base, "get", "IsMetric"]) == 0
    assert capsys.readouterr().out.strip() == "1"

    assert opsettings_main.main([*base, "remove", "IsMetric"]) == 0
    assert not (params_dir / "d" / "IsMetric").exists()

    assert opsettings_main.main([*base, "get", "IsMetric"]) == 1
    assert "IsMetric is not set" in capsys.readouterr().err


def test_param_get_prints_binary_as_hex(params_dir: Path, capsys) -> None:
    (params_dir / "d" / "Blob").write_bytes(b"\xff\x00")
    assert opsettings_main.main(["--params-dir", str(params_dir), "param", "get", "Blob"]) == 0
    assert capsys.readouterr().out.strip() == "ff00"


def test_param_list_is_sorted(params_dir: Path, capsys) -> None:
    for key in ("SshEnabled", "IsMetric", "DongleId"):
        (params_dir / "d" / key).write_bytes(b"1")

    assert opsettings_main.main(["--params-dir", str(params_dir), "param", "list"]) == 0
    assert capsys.readouterr().out.split() == ["DongleId", "IsMetric", "SshEnabled"]


def test_param_calibration_reports_missing_data(params_dir: Path, capsys) -> None:
    assert opsettings_main.main(["--params-dir", str(params_dir), "param", "calibration"]) == 0
    assert capsys.readouterr().out.strip() == "no calibration data"


def test_param_calibration_describes_blob(params_dir: Path, capsys) -> None:
    (params_dir / "d" / CALIBRATION_PARAM).write_bytes(encode_calibration(1, 0.0, 0.0349, -0.0524))
    assert opsettings_main.main(["--params-dir", str(params_dir), "param", "calibration"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Your device is pointed 2° ↑ and 3° ←")


def test_param_invalid_key_returns_1(params_dir: Path, capsys) -> None:
    assert opsettings_main.main(["--params-dir", str(params_dir), "param", "get", "../etc"]) == 1
    assert "Invalid parameter key" in capsys.readouterr().err


def test_param_missing_store_returns_1(tmp_path: Path, capsys) -> None:
    code = opsettings_main.main(["--params-dir", str(tmp_path / "nowhere"), "param", "list"])
    assert code == 1
    assert "Parameter store not found" in capsys.readouterr().err


def test_main_handles_keyboard_interrupt(params_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    def _interrupt(args, config):
        raise KeyboardInterrupt()

    monkeypatch.setattr("opsettings.cli.run_param", _interrupt)

    code = opsettings_main.main(["--params-dir", str(params_dir), "param", "list"])
    assert code == 130
    assert "Interrupted by user." in capsys.readouterr().out


def test_main_handles_unexpected_errors(params_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    def _boom(args, config):
        raise RuntimeError("boom")

    monkeypatch.setattr("opsettings.cli.run_param", _boom)

    code = opsettings_main.main(["--params-dir", str(params_dir), "param", "list"])
    assert code == 1
    assert "Error: boom" in capsys.readouterr().err
