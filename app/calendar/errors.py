"""Calendar error types.

Every failure reported by the calendar engine is one of these. They are
business outcomes, not database errors: get_session() rolls back on them
without logging a traceback, and the API layer maps each code to an HTTP
status.

Standard error codes:
- UNAUTHORIZED: no resolved user identity
- NOT_FOUND: template, workout or rule missing or not owned by the caller
- INVALID_ARGUMENT: missing date, unknown status, malformed recurrence
- CONFLICT: the write would duplicate an existing occurrence
- INVALID_TRANSITION: status change not permitted from the current status
"""


class CalendarError(RuntimeError):
    """Base class for calendar errors.

    Attributes:
        code: Stable error code (e.g., "NOT_FOUND", "CONFLICT")
        message: Human readable detail
    """

    code = "CALENDAR_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")


class UnauthorizedError(CalendarError):
    """Raised when an operation is attempted without a user identity."""

    code = "UNAUTHORIZED"


class NotFoundError(CalendarError):
    """Raised when a referenced entity does not exist or belongs to someone else."""

    code = "NOT_FOUND"


class InvalidArgumentError(CalendarError):
    """Raised when request values fail validation at the operation boundary."""

    code = "INVALID_ARGUMENT"


class ConflictError(CalendarError):
    """Raised when a write collides with an existing occurrence or rule state."""

    code = "CONFLICT"


class InvalidStatusTransitionError(ConflictError):
    """Raised when the current status does not allow the requested one.

    Attributes:
        current: Status the workout is in
        requested: Status the caller asked for
    """

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change workout status from {current} to {requested}")
