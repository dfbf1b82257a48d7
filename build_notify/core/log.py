"""Application logging for build-notify, on top of Loguru.

Diagnostics (git output, skipped sends, fallbacks) go to stderr through
``logger``; results meant for the pipeline log go to stdout via the CLI.

Example:
    from build_notify.core.log import logger
    logger.info("branch resolved: {}", name)
"""
from __future__ import annotations

import sys

from loguru import logger as _root_logger

logger = _root_logger.bind(app="build-notify")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <7}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


def _stderr_sink(message) -> None:
    # Look up sys.stderr per message; it may have been redirected.
    sys.stderr.write(message)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """(Re)install the single stderr sink.

    --verbose wins over --quiet when both are given.
    """
    level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"

    _root_logger.remove()
    _root_logger.add(_stderr_sink, format=LOG_FORMAT, level=level)
