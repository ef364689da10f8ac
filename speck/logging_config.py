"""Logging configuration for speck"""
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

LOG_FILENAME = "speck.log"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name when its stream is a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: Optional[str] = None, stream: Optional[TextIO] = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.stream = stream

    def _use_color(self) -> bool:
        stream = self.stream or sys.stderr
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color or not self._use_color():
            return super().format(record)
        # Colour a copy so the file handler sees the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def log_level(verbose: bool = False, debug: bool = False) -> int:
    if debug:
        return logging.DEBUG
    return logging.INFO if verbose else logging.WARNING


def get_log_path() -> Path:
    """Debug log location, ~/.speck/speck.log."""
    return Path.home() / ".speck" / LOG_FILENAME


def setup_logging(verbose: bool = False, debug: bool = False) -> Optional[Path]:
    """
    Configure logging for the speck-worktree CLI.

    Replaces any handlers on the root logger with a stderr handler. In debug
    mode a file handler is added too, truncated on every run.

    Args:
        verbose: Show INFO messages on stderr
        debug: Show DEBUG messages with timestamps and write the debug log

    Returns:
        Path of the debug log, or None when not in debug mode
    """
    level = log_level(verbose, debug)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    log_path = None
    if debug:
        log_path = get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="w")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    if debug:
        stderr_handler.setFormatter(ColoredFormatter(DETAILED_FORMAT, DATE_FORMAT, sys.stderr))
    else:
        stderr_handler.setFormatter(ColoredFormatter("[%(name)s] %(levelname)s: %(message)s", stream=sys.stderr))
    root_logger.addHandler(stderr_handler)

    return log_path


def get_logger(name: str) -> logging.Logger:
    """Logger named after the module, without the `speck.` and layer prefixes."""
    for prefix in ("speck.", "services.", "core."):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
