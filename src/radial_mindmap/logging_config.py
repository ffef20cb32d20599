"""Logging configuration for the radial mind map."""

import sys

from loguru import logger

_FORMAT = "{level.icon} {message}"
_VERBOSE_FORMAT = "{level.icon} {time:HH:mm:ss.SSS} {name}: {message}"


def configure_logging(*, verbose: bool = False) -> None:
    """Configure loguru on stderr; verbose mode adds timestamps and module names."""
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG", format=_VERBOSE_FORMAT)
    else:
        logger.add(sys.stderr, level="INFO", format=_FORMAT)
