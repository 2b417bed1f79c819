"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)


class SlotConflictException(ConflictException):
    """The requested slot overlaps an appointment already committed in the store."""

    def __init__(self, message: str = "The selected time slot is no longer available"):
        """Initialize with 409 status code."""
        super().__init__(message)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


class InvalidTimeFormatException(ValidationException):
    """A time-of-day string did not match HH:MM."""

    def __init__(self, value: object):
        """Initialize with the offending value."""
        super().__init__(
            f"Invalid time format: {value!r} (expected HH:MM)",
            details={"value": str(value)},
        )
        self.value = value


class InvalidTransitionException(AppException):
    """An appointment status transition is not permitted."""

    def __init__(
        self,
        current_state: str,
        requested_state: str,
        actor_role: str,
        reason: str | None = None,
    ):
        """Initialize with 409 status code and the rejected transition."""
        message = (
            f"Cannot move appointment from '{current_state}' "
            f"to '{requested_state}' as {actor_role}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            status_code=409,
            details={
                "current_state": current_state,
                "requested_state": requested_state,
                "actor_role": actor_role,
            },
        )
        self.current_state = current_state
        self.requested_state = requested_state
        self.actor_role = actor_role
        self.reason = reason


class ServiceUnavailableException(AppException):
    """The data store could not be reached within its time budget."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
