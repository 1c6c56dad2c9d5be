"""
Logging configuration for opsettings.

Console output goes to stderr so ``opsettings param get`` can be piped; the
TUI swaps the console handler for its in-app log pane at mount time.
"""

import logging
import sys
from types import TracebackType
from typing import IO, Optional


class Colors:
    """ANSI color codes for colored terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BG_RED = "\033[41m"


CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
DEBUG_CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"

# Third-party loggers that are noisy below WARNING.
_QUIET_LOGGERS = ("textual", "asyncio")


def stream_supports_color(stream: Optional[IO[str]]) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(callable(isatty) and isatty())
    except ValueError:
        # Closed stream.
        return False


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name per severity.

    The record is copied before coloring so that other handlers attached to
    the same logger (the log file, the TUI pane) still see the plain level.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.BG_RED + Colors.WHITE,
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{Colors.RESET}"
        return super().format(colored)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the ``opsettings`` logger tree.

    Existing handlers are replaced, so calling this twice does not duplicate
    output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output

    Example:
        >>> setup_logging(level="DEBUG")
        >>> logger = get_logger(__name__)
        >>> logger.info("Settings UI started")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger("opsettings")
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        ColoredFormatter(
            DEBUG_CONSOLE_FORMAT if numeric_level <= logging.DEBUG else CONSOLE_FORMAT,
            datefmt="%H:%M:%S",
            use_colors=stream_supports_color(sys.stderr),
        )
    )
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``opsettings`` namespace."""
    if not name.startswith("opsettings"):
        name = f"opsettings.{name}"
    return logging.getLogger(name)


def format_exception_summary(
    error: BaseException,
    *,
    max_length: int = 180,
) -> str:
    """
    Build a one-line ``Name: detail`` summary for the status line.

    Args:
        error: Exception instance.
        max_length: Maximum output length; longer summaries end in ``...``.

    Returns:
        Single-line summary.
    """
    exception_name = error.__class__.__name__
    detail = " ".join(str(error or "").split())
    summary = exception_name if not detail else f"{exception_name}: {detail}"
    if max_length > 3 and len(summary) > max_length:
        return summary[: max_length - 3].rstrip() + "..."
    return summary


def exception_exc_info(
    error: BaseException,
) -> tuple[type[BaseException], BaseException, TracebackType | None]:
    return (type(error), error, error.__traceback__)


def configure_logging_from_args(verbose: bool = False, log_level: Optional[str] = None,
                                log_file: Optional[str] = None) -> None:
    """
    Configure logging based on CLI arguments.

    Args:
        verbose: If True, set level to DEBUG
        log_level: Explicit log level (overrides verbose)
        log_file: Optional file for log output
    """
    if log_level:
        level = log_level.upper()
    elif verbose:
        level = "DEBUG"
    else:
        level = "INFO"

    setup_logging(level=level, log_file=log_file)
