"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class QuotaExceededException(AppException):
    """Plan quota reached for a resource kind.

    Recoverable: the client is expected to offer a plan upgrade.
    """

    def __init__(
        self,
        resource: str,
        limit: int,
        current_count: int,
        message: str | None = None,
    ):
        """Initialize with 402 status code and the quota figures."""
        self.resource = resource
        self.limit = limit
        self.current_count = current_count
        super().__init__(
            message or f"Plan limit of {limit} reached for {resource}",
            status_code=402,
            details={"resource": resource, "limit": limit, "current_count": current_count},
        )


class InvalidRecurrenceRuleException(AppException):
    """Recurrence rule cannot produce a valid series."""

    def __init__(self, message: str = "Invalid recurrence rule"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class InvalidDateException(AppException):
    """Attendance requested for a date with no session for the patient."""

    def __init__(self, message: str = "No scheduled session for this date"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class InvariantViolationException(AppException):
    """A data invariant would be broken by the requested change."""

    def __init__(self, message: str = "Invariant violation"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)
