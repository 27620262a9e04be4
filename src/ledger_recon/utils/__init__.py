"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ConfigurationError,
    CanonicalizationError,
    InputFileError,
    InputTooLargeError,
    ReconciliationCancelled,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "ReconciliationError",
    "ConfigurationError",
    "CanonicalizationError",
    "InputFileError",
    "InputTooLargeError",
    "ReconciliationCancelled",
    "setup_logging",
    "get_logger",
]
