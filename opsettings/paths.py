"""
Filesystem path helpers for opsettings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


PARAMS_DIR_ENV_VAR = "OPSETTINGS_PARAMS_DIR"
DEFAULT_PARAMS_DIR = Path("/data/params")
PARAMS_DATA_SUBDIR = "d"


def get_params_dir(override: Optional[str | Path] = None) -> Path:
    """
    Resolve the parameter store root directory.

    Priority:
    1. Explicit override argument
    2. OPSETTINGS_PARAMS_DIR environment variable
    3. /data/params
    """
    candidate: str | Path | None = override
    if candidate is None:
        candidate = os.environ.get(PARAMS_DIR_ENV_VAR)
    if candidate is None:
        candidate = DEFAULT_PARAMS_DIR
    return Path(candidate).expanduser().resolve()

