from . import (
    canon,
    exceptions,
    types,
    utils,
    windows,
    rates,
    schema,
    validate,
    catalog,
    profiles,
    ingest,
    pricing,
    transform,
    summary,
    formats,
    config,
    engine,
    log_config,
)
from loguru import logger as _logger

# Silent by default; log_config.configure_logging() turns output on
_logger.disable(__name__)

__version__ = "0.1.0"

__all__ = [
    "canon",
    "exceptions",
    "types",
    "utils",
    "windows",
    "rates",
    "schema",
    "validate",
    "catalog",
    "profiles",
    "ingest",
    "pricing",
    "transform",
    "summary",
    "formats",
    "config",
    "engine",
    "log_config",
]
