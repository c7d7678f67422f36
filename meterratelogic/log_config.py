"""loguru setup. The library stays silent until configure_logging() is called."""

from __future__ import annotations

import sys

from loguru import logger

__all__ = ["configure_logging", "disable_logging"]

PACKAGE = "meterratelogic"
_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | "
    "<level>{message}</level>"
)

_sink_id: int | None = None


def configure_logging(level: str = "INFO", *, serialize: bool = False) -> int:
    """Enable package logging to stderr; returns the loguru sink id."""
    global _sink_id
    if _sink_id is not None:
        logger.remove(_sink_id)
    logger.configure(extra={"component": PACKAGE})
    _sink_id = logger.add(
        sys.stderr,
        level=level.upper(),
        format=_FORMAT,
        serialize=serialize,
        filter=PACKAGE,
    )
    logger.enable(PACKAGE)
    return _sink_id


def disable_logging() -> None:
    global _sink_id
    logger.disable(PACKAGE)
    if _sink_id is not None:
        logger.remove(_sink_id)
        _sink_id = None
