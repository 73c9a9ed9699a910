"""
Python logging configuration for the procstat command.

The library modules only create loggers; handlers are installed here by
the command-line entry point.
"""

import logging
import sys


def setup_logging(level: str = "WARNING") -> None:
    """
    Configure Python logging for the procstat command.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)

    Log Format:
        YYYY-MM-DD HH:MM:SS [LEVEL] Message
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    # stderr, so records do not interleave with the terminal UI on stdout
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
