from __future__ import annotations

import importlib

import pytest


def test_opsettings_lazy_exports_and_errors() -> None:
    pkg = importlib.import_module("opsettings")
    assert pkg.__version__
    assert pkg.ParamStore is importlib.import_module("opsettings.params.store").ParamStore
    with pytest.raises(AttributeError):
        _ = pkg.not_a_real_export


def test_run_tui_lazy_export() -> None:
    pytest.importorskip("textual")
    pkg = importlib.import_module("opsettings")
    assert callable(pkg.run_tui)
