"""
Single-shot ``param`` commands.
"""

from __future__ import annotations

import argparse
import sys

from opsettings.config.models import SettingsConfig
from opsettings.errors import SettingsError
from opsettings.logging import format_exception_summary, get_logger
from opsettings.params.calibration import CALIBRATION_PARAM, calibration_text
from opsettings.params.store import ParamStore

logger = get_logger(__name__)


def _format_value(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.hex()


def run_param(args: argparse.Namespace, config: SettingsConfig) -> int:
    """Dispatch ``opsettings param <command>``; returns the exit code."""
    store = ParamStore(config.params.params_dir, create=config.params.create)
    command = args.param_command
    try:
        if command == "get":
            raw = store.get(args.key)
            if raw is None:
                print(f"{args.key} is not set", file=sys.stderr)
                return 1
            print(_format_value(raw))
            return 0
        if command == "set":
            store.put(args.key, args.value)
            logger.info("Set %s", args.key)
            return 0
        if command == "remove":
            store.remove(args.key)
            logger.info("Removed %s", args.key)
            return 0
        if command == "list":
            for key in store.keys():
                print(key)
            return 0
        if command == "calibration":
            print(calibration_text(store.get(CALIBRATION_PARAM)))
            return 0
    except SettingsError as exc:
        logger.error("param %s failed: %s", command, format_exception_summary(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyError as exc:
        print(f"Error: {exc.args[0] if exc.args else exc}", file=sys.stderr)
        return 1
    print(f"Unknown param command: {command}", file=sys.stderr)
    return 1
