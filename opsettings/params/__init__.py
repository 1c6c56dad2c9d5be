"""Parameter store access and persisted-blob decoding."""

from __future__ import annotations

from .calibration import CalibrationReading, calibration_text, decode_calibration, read_calibration
from .store import ParamStore, encode_value

__all__ = [
    "CalibrationReading",
    "ParamStore",
    "calibration_text",
    "decode_calibration",
    "encode_value",
    "read_calibration",
]
