"""Logging for rtmpfilter.

The filter runs inside host applications, so its records are disabled until
``configure_logging`` is called (the CLI always calls it).
"""

import sys

from loguru import logger

logger.disable("rtmpfilter")

_info_format = "<level>{level: <7}</level> | {message}"
_debug_format = (
    "<dim>{time:HH:mm:ss}</dim> | <level>{level: <7}</level> | <cyan>{name}</cyan> | {message}"
)


def configure_logging(verbose: bool = False) -> None:
    """Send rtmpfilter records to stderr.

    Args:
        verbose: Show DEBUG records with timestamps and module names. Otherwise
            only INFO and above.
    """
    logger.remove()
    if verbose:
        logger.add(sys.stderr, format=_debug_format, level="DEBUG")
    else:
        logger.add(sys.stderr, format=_info_format, level="INFO")
    logger.enable("rtmpfilter")


__all__ = ["logger", "configure_logging"]
