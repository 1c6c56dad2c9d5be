from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.3.0"

_LAZY_EXPORTS = {
    "ParamStore": ("opsettings.params.store", "ParamStore"),
    "run_tui": ("opsettings.ui.tui.app", "run_tui"),
}

__all__ = ["__version__", "ParamStore", "run_tui"]


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'opsettings' has no attribute '{name}'")
