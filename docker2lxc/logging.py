# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Centralized logging configuration with colored stderr output.

All diagnostics go to standard error; standard output is reserved for the
archive stream in remote sessions.

Usage:
    # In entry points
    from docker2lxc.logging import configure_logging
    configure_logging(level=logging.INFO, color=use_color())

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Pulling Docker image: '%s'...", image)
"""

import logging
import os
import sys
from typing import ClassVar


#: Level for the final success line, between INFO and WARNING.
SUCCESS = 25

logging.addLevelName(SUCCESS, "SUCCESS")


def use_color(stream=None) -> bool:
    """Determine whether to use ANSI color codes on a stream.

    Returns True when the stream is a TTY and the ``NO_COLOR`` environment
    variable is not set.  ``TERM=dumb`` also disables color.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class ColorFormatter(logging.Formatter):
    """Formatter that wraps each message in the ANSI color of its level.

    Example:
        handler.setFormatter(ColorFormatter("%(message)s", color=True))
        logger.error("Image 'nope' not found, aborting.")
        # Output: "\\033[31mImage 'nope' not found, aborting.\\033[0m"
    """

    LEVEL_CODES: ClassVar[dict[int, str]] = {
        logging.DEBUG: "2",
        logging.INFO: "33",
        SUCCESS: "32;1",
        logging.WARNING: "33;1",
        logging.ERROR: "31",
        logging.CRITICAL: "31;1",
    }

    def __init__(self, fmt: str | None = None, color: bool = False) -> None:
        super().__init__(fmt)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self._color:
            return text
        code = self.LEVEL_CODES.get(record.levelno)
        if code is None:
            return text
        return f"\033[{code}m{text}\033[0m"


def configure_logging(
    level: int = logging.INFO,
    color: bool = False,
    format_string: str | None = None,
) -> None:
    """Configure the root logger to write to stderr.

    Args:
        level: The logging level (e.g., logging.INFO, logging.DEBUG).
        color: Whether to colorize messages by level.
        format_string: Custom format string.  If None, plain messages are
            used at INFO and a name-prefixed format at DEBUG.
    """
    if format_string is None:
        if level <= logging.DEBUG:
            format_string = "%(levelname)s %(name)s: %(message)s"
        else:
            format_string = "%(message)s"

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter(format_string, color=color))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)
