"""
Configuration loader for opsettings.

Handles loading configuration from JSON/YAML files and converting
to typed dataclass models.
"""

from __future__ import annotations

import json
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .models import (
    DeviceConfig,
    ParamsConfig,
    SettingsConfig,
    UIConfig,
)


def load_raw_config(path: Path) -> Dict[str, Any]:
    """
    Load raw configuration from JSON or YAML file.

    Also loads environment variables from .env file if present.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Dictionary with raw configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
    """
    load_dotenv()

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path.read_text(encoding="utf-8")
    return parse_config_text(content, path)


def parse_config_text(content: str, path: Path | str) -> Dict[str, Any]:
    """
    Parse raw configuration content from JSON or YAML.

    Args:
        content: Config file content
        path: Path or filename used for extension detection
    """
    if isinstance(path, str):
        path = Path(path)

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(content) or {}
    if suffix == ".json":
        return json.loads(content) if content.strip() else {}
    raise ValueError(
        f"Unsupported config format: {suffix}. "
        f"Use .json, .yaml, or .yml"
    )


def build_params_config(raw: Dict[str, Any], params_dir: Optional[str | Path] = None) -> ParamsConfig:
    """Build ParamsConfig, letting an explicit ``params_dir`` win."""
    section = raw.get("params") or {}
    return ParamsConfig(
        params_dir=params_dir if params_dir is not None else section.get("params_dir"),
        create=bool(section.get("create", False)),
    )


def build_device_config(raw: Dict[str, Any]) -> DeviceConfig:
    section = raw.get("device") or {}
    return DeviceConfig(
        brand=section.get("brand", "openpilot"),
        version=section.get("version", ""),
        os_version=section.get("os_version", ""),
        hardware=section.get("hardware", "pc"),
        maps_enabled=bool(section.get("maps_enabled", False)),
    )


def build_ui_config(raw: Dict[str, Any]) -> UIConfig:
    section = raw.get("ui") or {}
    defaults = UIConfig()
    return UIConfig(
        watch_interval_s=float(section.get("watch_interval_s", defaults.watch_interval_s)),
        start_panel=str(section.get("start_panel", defaults.start_panel) or "").strip(),
        reboot_delay_s=float(section.get("reboot_delay_s", defaults.reboot_delay_s)),
    )


def build_config_from_raw(
    raw: Dict[str, Any],
    path: Optional[Path | str] = None,
    *,
    params_dir: Optional[str | Path] = None,
) -> SettingsConfig:
    """
    Build and validate SettingsConfig from raw configuration data.
    """
    if isinstance(path, str):
        path = Path(path)
    if path is not None:
        path = path.expanduser().resolve()

    commands = raw.get("commands") or {}
    if not isinstance(commands, dict):
        raise ValueError("'commands' must be a mapping of name -> argv list")

    config = SettingsConfig(
        params=build_params_config(raw, params_dir),
        device=build_device_config(raw),
        ui=build_ui_config(raw),
        commands=commands,
        config_path=path,
    )
    config.validate()
    return config


def load_config_from_file(
    path: Path | str,
    *,
    params_dir: Optional[str | Path] = None,
) -> SettingsConfig:
    """
    Load and validate settings configuration from file.

    This is the main entry point for loading configuration.

    Args:
        path: Path to config file (.json, .yaml, or .yml)
        params_dir: Optional override for the parameter store root

    Returns:
        Validated SettingsConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()

    raw = load_raw_config(path)
    return build_config_from_raw(raw, path, params_dir=params_dir)


def default_config(*, params_dir: Optional[str | Path] = None) -> SettingsConfig:
    """Build a validated configuration with every default applied."""
    load_dotenv()
    return build_config_from_raw({}, None, params_dir=params_dir)


def config_to_raw(config: SettingsConfig) -> Dict[str, Any]:
    """
    Serialize SettingsConfig into a JSON/YAML-friendly dict.
    """
    return {
        "params": {
            "params_dir": str(config.params.params_dir) if config.params.params_dir else None,
            "create": config.params.create,
        },
        "device": {
            "brand": config.device.brand,
            "version": config.device.version,
            "os_version": config.device.os_version,
            "hardware": config.device.hardware,
            "maps_enabled": config.device.maps_enabled,
        },
        "ui": {
            "watch_interval_s": config.ui.watch_interval_s,
            "start_panel": config.ui.start_panel,
            "reboot_delay_s": config.ui.reboot_delay_s,
        },
        "commands": {name: list(argv) for name, argv in config.commands.items()},
    }


def save_config_to_file(config: SettingsConfig, path: Path | str) -> None:
    """
    Serialize and save configuration to JSON/YAML file.
    """
    if isinstance(path, str):
        path = Path(path)

    path = path.expanduser().resolve()
    raw = config_to_raw(config)

    suffix = path.suffix.lower()
    if suffix == ".json":
        path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
    elif suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(raw, sort_keys=False), encoding="utf-8")
    else:
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .json, .yaml, or .yml"
        )
