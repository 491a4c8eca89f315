"""Typed errors raised by the handbook search components.

Hierarchy:
  HandbookSearchError     — common base, never raised directly.
  ValidationError         — malformed caller input, never retried.
  NotFoundError           — referenced file, directory or document is absent.
  ProviderError           — an upstream embedding / translation / storage call failed.
  DimensionMismatchError  — a returned vector does not have the configured length.
"""


class HandbookSearchError(Exception):
    """Base class for all errors raised by handbook search."""


class ValidationError(HandbookSearchError):
    """Raised when caller input is malformed (empty query, non-positive limit, empty text)."""


class NotFoundError(HandbookSearchError):
    """Raised when a referenced resource does not exist."""


class ProviderError(HandbookSearchError):
    """Raised when an upstream provider call fails.

    Attributes:
        status_code (int | None): HTTP status of the failed call, if any.
        category (str): Classification of the failure (e.g. "rate_limited", "quota_exceeded").
    """

    def __init__(self, message: str, status_code: int | None = None, category: str = "error"):
        super().__init__(message)
        self.status_code = status_code
        self.category = category


class DimensionMismatchError(HandbookSearchError):
    """Raised when an embedding has a different length than the configured dimension."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected {expected} dimensions, got {actual}")
        self.expected = expected
        self.actual = actual
