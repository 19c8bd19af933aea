"""Shared utilities for XML fragment extraction.

This module provides the configuration objects, exception hierarchy, scan
metrics and logging helpers used across all layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    FragmentConfig,
    Role,
    StreamConfig,
)
from .errors import (
    BindingError,
    DecodeError,
    FragmentError,
    UnexpectedEndOfTokenError,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)
from .result import ScanMetrics

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "FragmentConfig",
    "Role",
    "StreamConfig",
    "BindingError",
    "DecodeError",
    "FragmentError",
    "UnexpectedEndOfTokenError",
    "CorrelationLogger",
    "get_logger",
    "ScanMetrics",
]
