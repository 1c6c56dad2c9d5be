"""
File-backed persistent parameter store.

Each parameter lives in its own file under ``<params_dir>/d/<Key>``. Writes go
through a temporary file followed by ``os.replace`` so a reader never sees a
half-written value; no other consistency guarantee is made.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Iterator, Optional, Union

from opsettings.errors import StoreUnavailable
from opsettings.logging import get_logger
from opsettings.paths import PARAMS_DATA_SUBDIR, get_params_dir

logger = get_logger(__name__)

ParamValue = Union[bytes, str, int, bool]

TRUE_BYTES = b"1"
FALSE_BYTES = b"0"

_KEY_RE = re.compile(r"^[A-Za-z0-9_]+$")


def encode_value(value: ParamValue) -> bytes:
    """Encode a Python value into the stored byte representation."""
    if isinstance(value, bool):
        return TRUE_BYTES if value else FALSE_BYTES
    if isinstance(value, int):
        return str(value).encode("utf-8")
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"Unsupported parameter value type: {type(value).__name__}")


class ParamStore:
    """Persistent key/value store addressed by parameter name."""

    def __init__(self, params_dir: Optional[str | Path] = None, *, create: bool = False) -> None:
        self._root = get_params_dir(params_dir)
        self._data_dir = self._root / PARAMS_DATA_SUBDIR
        if create:
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreUnavailable(f"Cannot create params dir {self._data_dir}: {exc}") from exc

    @property
    def root(self) -> Path:
        """Store root (the directory containing ``d/``)."""
        return self._root

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def is_available(self) -> bool:
        return self._data_dir.is_dir() and os.access(self._data_dir, os.R_OK | os.W_OK)

    def path_for(self, key: str) -> Path:
        """Return the backing file path for ``key`` (used for file watches)."""
        self._check_key(key)
        return self._data_dir / key

    def get(self, key: str) -> Optional[bytes]:
        """Return raw bytes for ``key``, or None when the key is absent."""
        path = self.path_for(key)
        self._ensure_available()
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read parameter {key}: {exc}") from exc

    def get_str(self, key: str, default: str = "") -> str:
        raw = self.get(key)
        if raw is None:
            return default
        return raw.decode("utf-8", errors="replace")

    def get_bool(self, key: str) -> bool:
        """Return True only when the stored value is the truthy byte."""
        raw = self.get(key)
        return raw is not None and raw.strip() == TRUE_BYTES

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return int(raw.decode("utf-8").strip())
        except (UnicodeDecodeError, ValueError):
            logger.debug("Parameter %s holds a non-integer value", key)
            return default

    def put(self, key: str, value: ParamValue) -> None:
        """Atomically write ``value`` to ``key``."""
        path = self.path_for(key)
        self._ensure_available()
        data = encode_value(value)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", dir=str(self._data_dir))
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write parameter {key}: {exc}") from exc

    def put_bool(self, key: str, value: bool) -> None:
        self.put(key, bool(value))

    def remove(self, key: str) -> None:
        """Remove ``key``; removing an absent key is a no-op."""
        path = self.path_for(key)
        self._ensure_available()
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StoreUnavailable(f"Cannot remove parameter {key}: {exc}") from exc

    def keys(self) -> Iterator[str]:
        """Yield stored keys in sorted order."""
        self._ensure_available()
        for entry in sorted(self._data_dir.iterdir()):
            if entry.is_file() and _KEY_RE.match(entry.name):
                yield entry.name

    def _ensure_available(self) -> None:
        if not self._data_dir.is_dir():
            raise StoreUnavailable(f"Parameter store not found: {self._data_dir}")

    @staticmethod
    def _check_key(key: str) -> None:
        if not key or not _KEY_RE.match(key):
            raise KeyError(f"Invalid parameter key: {key!r}")
