"""
Error taxonomy for the recall engine.

Validation errors are always surfaced to the caller. Provider, store, timeout
and circuit errors are raised by the integration layers; the read path turns
them into degraded results while the write path lets them propagate.
"""

from typing import Optional


class RecallError(Exception):
    """Base class for all recall engine errors."""


class ValidationError(RecallError, ValueError):
    """Malformed filter, date, vector, id or metadata input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class QualityFilterError(ValidationError):
    """Raised when a quality filter cannot be parsed or evaluated."""


class DateFilterError(ValidationError):
    """Raised when a created/occurred date filter is malformed."""


class ProviderUnavailableError(RecallError):
    """An embedding provider cannot be used in the current environment."""


class ProviderError(RecallError):
    """An embedding provider call failed."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class StoreError(RecallError):
    """A vector store operation failed."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class OperationTimeoutError(RecallError, TimeoutError):
    """An external call exceeded its time budget."""


class CircuitOpenError(RecallError):
    """Raised when a circuit breaker is open and blocking requests."""


__all__ = [
    'RecallError',
    'ValidationError',
    'QualityFilterError',
    'DateFilterError',
    'ProviderUnavailableError',
    'ProviderError',
    'StoreError',
    'OperationTimeoutError',
    'CircuitOpenError',
]
