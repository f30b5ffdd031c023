"""
Exception hierarchy for the finance API.

Routers and services raise these instead of building HTTP responses
themselves; ``finance_api.main`` maps each class to a status code.
"""
from typing import Optional


class FinanceAPIError(Exception):
    """
    Base class for all application errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional exception that caused this error
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class InvalidRequestError(FinanceAPIError):
    """Raised when input is malformed or a required field is missing."""

    status_code = 400


class NotFoundError(FinanceAPIError):
    """Raised when a referenced entity does not exist for the given owner."""

    status_code = 404


class StoreError(FinanceAPIError):
    """Raised when a persistence call fails."""

    status_code = 500
