"""Errors raised by the service layer and mapped to HTTP status codes in routes.

Driver and connectivity failures are raised as the builtin ConnectionError.
"""


class RecordNotFoundError(LookupError):
    """Raised when a transaction or budget cannot be located."""


class DuplicateBudgetError(Exception):
    """Raised when a budget already exists for the same category and month."""
