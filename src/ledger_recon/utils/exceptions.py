"""Custom exceptions for the reconciliation engine."""

from typing import Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class CanonicalizationError(ReconciliationError):
    """A raw row could not be turned into a canonical record."""

    def __init__(self, message: str, row_index: Optional[int] = None):
        super().__init__(message)
        self.row_index = row_index


class InputFileError(ReconciliationError):
    """Error reading an input file into rows."""

    pass


class InputTooLargeError(ReconciliationError):
    """Input exceeds the configured per-side record cap."""

    pass


class ReconciliationCancelled(ReconciliationError):
    """Run was cancelled through the cooperative cancellation hook."""

    pass
