"""Domain-specific exceptions for shift-core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from ShiftCoreError for easy catching.
"""


class ShiftCoreError(Exception):
    """Base exception for all shift-core errors.

    Callers can catch this exception to handle any shift-core error and
    surface its message to the administrative UI.
    """

    pass


class ValidationError(ShiftCoreError):
    """Raised when request input is malformed.

    This exception is raised before any data is read when:
    - A month string is not in YYYY-MM format
    - A reconciled total is missing or not finite
    - Site, metric key, basis or method are missing or invalid
    - Bucket-factor inputs are inconsistent (min > max, lock without estimate)
    """

    pass


class StateError(ShiftCoreError):
    """Raised when an operation is not allowed in the current state."""

    pass


class ReconciliationLockedError(StateError):
    """Raised when a locked reconciliation would be mutated.

    The stored record is left unchanged when this is raised.
    """

    def __init__(self, site: str, month_ym: str, metric_key: str) -> None:
        super().__init__(f"reconciliation is locked: {site} {month_ym} {metric_key}")
        self.site = site
        self.month_ym = month_ym
        self.metric_key = metric_key


class NotFoundError(ShiftCoreError):
    """Raised when a reconciliation or shift that must exist does not."""

    pass


class InfeasibleSolveError(ShiftCoreError):
    """Raised by a bucket-factor strategy that cannot satisfy its constraints.

    The solver catches this and falls back to the proportional split, so it
    never escapes solve_bucket_factors().
    """

    pass


class UpstreamDataError(ShiftCoreError):
    """Raised when a shift's activity totals are missing or malformed.

    Monthly aggregation catches this per shift, logs it, and treats the
    shift's contribution as 0.
    """

    def __init__(self, message: str, shift_id: str | None = None) -> None:
        super().__init__(message)
        self.shift_id = shift_id


class StorageError(ShiftCoreError):
    """Raised when a stored document cannot be read or written."""

    pass
