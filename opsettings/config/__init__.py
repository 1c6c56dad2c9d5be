"""
Configuration management for opsettings.

This package provides typed configuration models and loaders.
"""

from .models import DeviceConfig, ParamsConfig, SettingsConfig, UIConfig
from .loader import default_config, load_config_from_file

__all__ = [
    "DeviceConfig",
    "ParamsConfig",
    "SettingsConfig",
    "UIConfig",
    "default_config",
    "load_config_from_file",
]
