"""Exception hierarchy for vuln-trend."""

from .base import VulnTrendError
from .config import ConfigurationError, InvalidConfigError
from .history import (
    HistoryError,
    InsufficientHistoryError,
    InvalidArgumentError,
    InvalidInputError,
)

__all__ = [
    "VulnTrendError",
    "HistoryError",
    "InvalidArgumentError",
    "InvalidInputError",
    "InsufficientHistoryError",
    "ConfigurationError",
    "InvalidConfigError",
]
