"""
Main CLI entry point for opsettings.

Without a subcommand the settings TUI starts; ``param`` subcommands read and
write the parameter store directly.
"""

import argparse
import sys
from pathlib import Path

from opsettings.logging import configure_logging_from_args, get_logger

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def build_parser() -> argparse.ArgumentParser:
    """
    Build the main argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="opsettings",
        description="Device settings surface backed by a persistent parameter store",
        epilog="Use 'opsettings <command> --help' for more information on a specific command.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH} when present)",
    )
    parser.add_argument(
        "--params-dir",
        type=Path,
        help="Parameter store root (overrides config and OPSETTINGS_PARAMS_DIR)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (overrides --verbose)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
        required=False,  # No command launches the TUI
    )

    # -------------------------------------------------------------------------
    # Param subcommand
    # -------------------------------------------------------------------------
    param_parser = subparsers.add_parser(
        "param",
        help="Read or write stored parameters",
        description="Inspect and edit the persistent parameter store.",
    )
    param_subparsers = param_parser.add_subparsers(
        dest="param_command",
        title="param commands",
        required=True,
    )

    get_parser = param_subparsers.add_parser("get", help="Print a parameter value")
    get_parser.add_argument("key", help="Parameter key")

    set_parser = param_subparsers.add_parser("set", help="Write a parameter value")
    set_parser.add_argument("key", help="Parameter key")
    set_parser.add_argument("value", help="Value to store (written as UTF-8 text)")

    remove_parser = param_subparsers.add_parser("remove", help="Delete a parameter")
    remove_parser.add_argument("key", help="Parameter key")

    param_subparsers.add_parser("list", help="List stored parameter keys")

    param_subparsers.add_parser("calibration", help="Describe the stored calibration")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the opsettings CLI.

    Args:
        argv: Command-line arguments (for testing)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging_from_args(
        verbose=args.verbose,
        log_level=args.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )

    logger = get_logger(__name__)
    logger.debug("Parsed arguments: %s", args)

    from opsettings.config import default_config, load_config_from_file

    try:
        if args.config is not None:
            cfg_path = Path(args.config).expanduser().resolve()
            if not cfg_path.exists():
                logger.error("Config file not found: %s", cfg_path)
                print(f"Error: Configuration file not found: {cfg_path}", file=sys.stderr)
                return 1
            logger.info("Loading configuration from: %s", cfg_path)
            config = load_config_from_file(cfg_path, params_dir=args.params_dir)
        elif DEFAULT_CONFIG_PATH.exists():
            logger.info("Loading configuration from: %s", DEFAULT_CONFIG_PATH)
            config = load_config_from_file(DEFAULT_CONFIG_PATH, params_dir=args.params_dir)
        else:
            logger.debug("No config file; using defaults")
            config = default_config(params_dir=args.params_dir)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    if not args.command:
        logger.info("Starting TUI interface")
        from opsettings.ui.tui.app import run_tui
        return run_tui(config)

    try:
        if args.command == "param":
            from opsettings.cli import run_param
            return run_param(args, config)

        parser.print_help()
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nInterrupted by user.")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.exception("Unhandled exception in main")
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
