"""
Configuration models for opsettings.

Dataclasses normalise their inputs in ``__post_init__`` and expose
``validate()`` for checks that need the whole section.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional

from opsettings.paths import get_params_dir

HardwareType = Literal["tici", "eon", "pc"]

VALID_HARDWARE = ("tici", "eon", "pc")

DEFAULT_SCRIPTS_DIR = "/data/openpilot"

DEFAULT_COMMANDS: Dict[str, List[str]] = {
    "reboot": ["sudo", "reboot"],
    "poweroff": ["sudo", "poweroff"],
    "init_params": [f"{DEFAULT_SCRIPTS_DIR}/init_param.sh"],
    "load_preset1": [f"{DEFAULT_SCRIPTS_DIR}/load_preset1.sh"],
    "save_preset1": [f"{DEFAULT_SCRIPTS_DIR}/save_preset1.sh"],
    "load_preset2": [f"{DEFAULT_SCRIPTS_DIR}/load_preset2.sh"],
    "save_preset2": [f"{DEFAULT_SCRIPTS_DIR}/save_preset2.sh"],
    "git_fetch": [f"{DEFAULT_SCRIPTS_DIR}/gitcommit.sh"],
    "git_pull": [f"{DEFAULT_SCRIPTS_DIR}/gitpull.sh"],
    "git_reset": [f"{DEFAULT_SCRIPTS_DIR}/git_reset.sh"],
    "git_pull_cancel": [f"{DEFAULT_SCRIPTS_DIR}/gitpull_cancel.sh"],
    "panda_flash": [f"{DEFAULT_SCRIPTS_DIR}/panda_flashing.sh"],
    "panda_edit": [f"{DEFAULT_SCRIPTS_DIR}/p_edit.sh"],
    "delete_recordings": ["sh", "-c", "rm -f /storage/emulated/0/videos/*"],
    "delete_driving_logs": ["sh", "-c", "rm -rf /storage/emulated/0/realdata/*"],
    "force_calibration": [
        "cp",
        "-f",
        f"{DEFAULT_SCRIPTS_DIR}/selfdrive/assets/addon/param/CalibrationParams",
        "/data/params/d/",
    ],
}


@dataclass
class ParamsConfig:
    """Location of the persistent parameter store."""

    params_dir: Optional[Path] = None
    """Store root; values live under ``<params_dir>/d``."""

    create: bool = False
    """Create the store directory when it does not exist."""

    def __post_init__(self) -> None:
        if isinstance(self.params_dir, str):
            self.params_dir = Path(self.params_dir) if self.params_dir.strip() else None
        self.params_dir = get_params_dir(self.params_dir)

    def validate(self) -> None:
        if self.params_dir is None:
            raise ValueError("params.params_dir is required")


@dataclass
class DeviceConfig:
    """Static facts about the device the settings surface runs on."""

    brand: str = "openpilot"
    version: str = ""
    os_version: str = ""
    hardware: HardwareType = "pc"
    maps_enabled: bool = False

    def __post_init__(self) -> None:
        self.brand = str(self.brand or "").strip() or "openpilot"
        self.version = str(self.version or "").strip()
        self.os_version = str(self.os_version or "").strip()
        env_hardware = os.environ.get("OPSETTINGS_HARDWARE")
        if env_hardware:
            self.hardware = env_hardware.strip().lower()  # type: ignore[assignment]
        self.hardware = str(self.hardware or "pc").strip().lower()  # type: ignore[assignment]

    @property
    def is_tici(self) -> bool:
        return self.hardware == "tici"

    @property
    def brand_version(self) -> str:
        return f"{self.brand} v{self.version}" if self.version else self.brand

    def validate(self) -> None:
        if self.hardware not in VALID_HARDWARE:
            raise ValueError(
                f"device.hardware must be one of {VALID_HARDWARE}, got '{self.hardware}'"
            )


@dataclass
class UIConfig:
    """Timing and navigation options for the settings UI."""

    watch_interval_s: float = 0.5
    """Polling interval for watched parameter files."""

    start_panel: str = "device"
    """Panel shown whenever the settings surface is opened."""

    reboot_delay_s: float = 1.0
    """Delay between a calibration reset and the reboot it triggers."""

    def validate(self) -> None:
        if self.watch_interval_s <= 0:
            raise ValueError(f"ui.watch_interval_s must be positive, got {self.watch_interval_s}")
        if self.reboot_delay_s < 0:
            raise ValueError(f"ui.reboot_delay_s must be >= 0, got {self.reboot_delay_s}")
        if not self.start_panel:
            raise ValueError("ui.start_panel is required")


@dataclass
class SettingsConfig:
    """Top-level configuration for the settings application."""

    params: ParamsConfig = field(default_factory=ParamsConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    commands: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_COMMANDS))
    config_path: Optional[Path] = None

    def __post_init__(self) -> None:
        merged = dict(DEFAULT_COMMANDS)
        for name, argv in (self.commands or {}).items():
            if isinstance(argv, str):
                argv = [argv]
            merged[str(name).strip()] = [str(arg) for arg in (argv or [])]
        self.commands = merged

    def command(self, name: str) -> List[str]:
        """Return the argv configured for ``name``."""
        try:
            return list(self.commands[name])
        except KeyError:
            raise KeyError(f"No command configured for '{name}'") from None

    def validate(self) -> None:
        self.params.validate()
        self.device.validate()
        self.ui.validate()
        for name, argv in self.commands.items():
            if not name:
                raise ValueError("commands entries must have a name")
            if not argv:
                raise ValueError(f"commands.{name} must not be empty")
