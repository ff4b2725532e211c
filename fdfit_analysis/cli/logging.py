"""
Console logging for the fdfit CLI.

Messages are written without timestamps; the level is shown by a prefix:
- INFO: none
- WARNING: "! "
- ERROR/CRITICAL: "!! "
- DEBUG: "[DEBUG] "
"""

import argparse
import logging
import sys

logger = logging.getLogger(__name__)

LEVEL_PREFIXES = {
    logging.DEBUG: "[DEBUG] ",
    logging.INFO: "",
    logging.WARNING: "! ",
    logging.ERROR: "!! ",
    logging.CRITICAL: "!! ",
}


# =============================================================================
# Formatter and filter
# =============================================================================

class PrefixFormatter(logging.Formatter):
    """Formats a record as its message behind the level prefix."""

    def format(self, record):
        message = record.getMessage()
        if record.exc_info and record.levelno == logging.DEBUG:
            message += "\n" + self.formatException(record.exc_info)
        return f"{LEVEL_PREFIXES.get(record.levelno, '')}{message}"


class LevelFilter(logging.Filter):
    """Accepts records whose level lies in [min_level, max_level]."""

    def __init__(self, min_level: int, max_level: int = logging.CRITICAL):
        super().__init__()
        self.min_level = min_level
        self.max_level = max_level

    def filter(self, record):
        return self.min_level <= record.levelno <= self.max_level


def _stream_handler(stream, min_level: int, max_level: int = logging.CRITICAL) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(min_level)
    handler.addFilter(LevelFilter(min_level, max_level))
    handler.setFormatter(PrefixFormatter())
    return handler


# =============================================================================
# Setup
# =============================================================================

def setup_logging(args: argparse.Namespace) -> None:
    """
    Configure the root logger from the command line flags.

    - default: INFO and WARNING on stdout, ERROR on stderr
    - quiet (-q): INFO is dropped
    - verbose (-v): DEBUG is added on stderr

    Parameters
    ----------
    args : argparse.Namespace
        Parsed arguments with 'quiet' and 'verbose' attributes
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    stdout_min = logging.WARNING if args.quiet else logging.INFO
    root_logger.addHandler(_stream_handler(sys.stdout, stdout_min, logging.WARNING))
    root_logger.addHandler(_stream_handler(sys.stderr, logging.ERROR))

    if args.verbose >= 1:
        root_logger.addHandler(_stream_handler(sys.stderr, logging.DEBUG, logging.DEBUG))

    # matplotlib font and backend chatter stays out of -v output
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def log_separator(length: int = 50, char: str = "=") -> None:
    """Log a separator line of `length` copies of `char`."""
    logger.info(char * length)


__all__ = [
    'PrefixFormatter',
    'LevelFilter',
    'setup_logging',
    'log_separator',
]
