"""
Logging setup for pymimp.

Console messages go through tqdm so they do not tear the progress bars
shown while kinase models are scored. A plain-text log file can be added
for batch runs.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from tqdm import tqdm


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    GRAY = "\033[0;90m"


class ColoredFormatter(logging.Formatter):
    """
    Prefix messages with a bracketed level name, colored on a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or "%(levelname)s %(message)s")
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
            record.levelname = f"{color}[{record.levelname}]{Colors.RESET}"
        else:
            record.levelname = f"[{record.levelname}]"

        return super().format(record)


class TqdmHandler(logging.StreamHandler):
    """Stream handler that writes above active tqdm progress bars."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    name: str = "pymimp",
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    use_colors: bool = True,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the pymimp logger.

    Calling it again replaces the handlers, so the CLI can raise the level
    after parsing --verbose.

    Args:
        name: Logger name (default: "pymimp")
        level: Logging level (default: INFO)
        log_file: Optional path to a plain-text log file
        use_colors: Color level names on a terminal
        verbose: Shortcut for level=DEBUG

    Returns:
        Configured logger instance
    """
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = TqdmHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "pymimp") -> logging.Logger:
    """Return a pymimp logger, configuring it on first use."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        setup_logging(name)
    return logger
