"""
Common utilities for the hexgraph routing library.

This package provides shared configuration, logging, and the error taxonomy
used across all hexgraph components.
"""

from .config import config, AppConfig, load_config
from .logging import (
    logger,
    get_logger,
    setup_logging,
    TimedLogger,
    log_data_processing,
)
from .errors import (
    HexGraphError,
    InvalidResolution,
    InvalidCell,
    InvalidEdge,
    InvalidWeight,
    GraphFrozen,
    UnsupportedFormat,
    CorruptGraphData,
    BackendMismatch,
)

__all__ = [
    "config",
    "AppConfig",
    "load_config",
    "logger",
    "get_logger",
    "setup_logging",
    "TimedLogger",
    "log_data_processing",
    "HexGraphError",
    "InvalidResolution",
    "InvalidCell",
    "InvalidEdge",
    "InvalidWeight",
    "GraphFrozen",
    "UnsupportedFormat",
    "CorruptGraphData",
    "BackendMismatch",
]
