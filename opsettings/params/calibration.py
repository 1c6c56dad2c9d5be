"""Decode the persisted live-calibration blob into mount angles."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Optional

from opsettings.errors import MalformedPersistedBlob
from opsettings.logging import get_logger

logger = get_logger(__name__)

CALIBRATION_PARAM = "CalibrationParams"
NO_CALIBRATION_TEXT = "no calibration data"

# int32 status, float32 roll/pitch/yaw (radians)
_CALIBRATION_FORMAT = struct.Struct("<i3f")


@dataclass(frozen=True)
class CalibrationReading:
    """Mount angles extracted from a calibration blob."""

    pitch_deg: float
    yaw_deg: float
    valid: bool

    def describe(self) -> str:
        """Human-readable pointing direction, one significant digit."""
        if not self.valid:
            return NO_CALIBRATION_TEXT
        pitch_arrow = "↑" if self.pitch_deg > 0 else "↓"
        yaw_arrow = "→" if self.yaw_deg > 0 else "←"
        return (
            f"Your device is pointed {abs(self.pitch_deg):.1g}° {pitch_arrow} "
            f"and {abs(self.yaw_deg):.1g}° {yaw_arrow}."
        )


def decode_calibration(blob: bytes) -> CalibrationReading:
    """
    Decode a calibration blob.

    Raises:
        MalformedPersistedBlob: If the blob has the wrong size or holds
            non-finite angles.
    """
    if len(blob) != _CALIBRATION_FORMAT.size:
        raise MalformedPersistedBlob(
            f"calibration blob must be {_CALIBRATION_FORMAT.size} bytes, got {len(blob)}"
        )
    status, _roll, pitch, yaw = _CALIBRATION_FORMAT.unpack(blob)
    if not (math.isfinite(pitch) and math.isfinite(yaw)):
        raise MalformedPersistedBlob("calibration blob holds non-finite angles")
    return CalibrationReading(
        pitch_deg=math.degrees(pitch),
        yaw_deg=math.degrees(yaw),
        valid=status != 0,
    )


def encode_calibration(status: int, roll: float, pitch: float, yaw: float) -> bytes:
    """Build a calibration blob (angles in radians)."""
    return _CALIBRATION_FORMAT.pack(int(status), float(roll), float(pitch), float(yaw))


def read_calibration(blob: Optional[bytes]) -> Optional[CalibrationReading]:
    """Decode ``blob``, treating absent or malformed data as no reading."""
    if not blob:
        return None
    try:
        return decode_calibration(blob)
    except MalformedPersistedBlob as exc:
        logger.info("Invalid %s: %s", CALIBRATION_PARAM, exc)
        return None


def calibration_text(blob: Optional[bytes]) -> str:
    """Display text for the calibration state held in ``blob``."""
    reading = read_calibration(blob)
    if reading is None:
        return NO_CALIBRATION_TEXT
    return reading.describe()
