"""Typed failures raised by the budget handlers.

Each error carries a stable ``code`` and the HTTP status the API maps it to.
"""

from __future__ import annotations


class WattSenseError(Exception):
    """Base class for all engine errors reported to callers."""

    code = "error"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    default_message = "WattSense error"

    @property
    def message(self) -> str:
        return str(self)


class BudgetValidationError(WattSenseError):
    """Bad budget input — reported to the caller, never logged as a system error."""

    code = "invalid_budget"
    status_code = 400
    default_message = "Invalid budget"


class InvalidAmountError(BudgetValidationError):
    code = "invalid_amount"
    default_message = "Invalid budget value"


class InvalidUnitError(BudgetValidationError):
    code = "invalid_unit"
    default_message = "Invalid budget unit"


class InvalidStartDateError(BudgetValidationError):
    code = "invalid_start_date"
    default_message = "Invalid start date"


class InvalidEndDateError(BudgetValidationError):
    code = "invalid_end_date"
    default_message = "Invalid end date"


class DateRangeError(BudgetValidationError):
    code = "start_after_end"
    default_message = "start must be before end date"


class UnauthenticatedError(WattSenseError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Unauthorized"


class BudgetOwnerNotFoundError(WattSenseError):
    code = "user_not_found"
    status_code = 404
    default_message = "User not found"


class StorageError(WattSenseError):
    """Write-path storage failure — a hard failure, surfaced to the caller."""

    code = "storage_unavailable"
    status_code = 503
    default_message = "Storage unavailable"
