#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import logging
import sys
from typing import IO

# Just for reference, the predefined logging levels:
#
# Python         added here
# -------------------------
# CRITICAL 50
# ERROR    40
# WARNING  30    <= level without any -v
# INFO     20
#                VERBOSE  15    <= -v
# DEBUG    10    <= -vv
#
# Everything logged here ends up on stderr. stdout belongs to the status
# line of the monitoring plug-in and must only ever contain that one line.

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("vdimon")


def get_formatter(format_str: str = "%(levelname)s: %(message)s") -> logging.Formatter:
    """Returns a new message formatter instance. The default format is the
    short one used on the console of the active checks."""
    return logging.Formatter(format_str)


def clear_console_logging() -> None:
    logger.handlers[:] = []
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.WARNING)


# Set default logging handler to avoid "No handler found" warnings.
clear_console_logging()


def setup_logging_handler(stream: IO[str], formatter: logging.Formatter | None = None) -> None:
    """Write all log messages of the vdimon logger hierarchy to the given stream"""
    if formatter is None:
        formatter = get_formatter()

    handler = logging.StreamHandler(stream=stream)
    handler.setFormatter(formatter)

    del logger.handlers[:]  # Remove all previously existing handlers
    logger.addHandler(handler)


def setup_console_logging(verbosity: int, stream: IO[str] | None = None) -> None:
    """Enable the diagnostic channel of a command line tool.

    The verbosity is what the user asked for on the command line (number of
    -v flags). More detailed levels also get the logger name and line number
    in front of each message.
    """
    level = verbosity_to_log_level(verbosity)
    setup_logging_handler(
        sys.stderr if stream is None else stream,
        get_formatter(
            "%(levelname)s: %(name)s: %(filename)s: %(lineno)s %(message)s"
            if level <= logging.DEBUG
            else "%(levelname)s: %(message)s"
        ),
    )
    logger.setLevel(level)


def verbosity_to_log_level(verbosity: int) -> int:
    """Values for "verbosity":

      0: enables WARNING and above
      1: enables VERBOSE and above
      2: enables DEBUG and above (ALL messages)

    >>> verbosity_to_log_level(0) == logging.WARNING
    True
    >>> verbosity_to_log_level(5) == logging.DEBUG
    True
    """
    if verbosity < 0:
        raise ValueError(verbosity)
    if verbosity == 0:
        return logging.WARNING
    if verbosity == 1:
        return VERBOSE
    return logging.DEBUG
