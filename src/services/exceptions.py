"""
Domain exceptions for scheduling operations.

Each exception carries the HTTP status the API layer renders it with and a
retryable flag, mirroring the error envelope used by the exception handlers.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base exception for scheduling operations."""

    status_code: int = 500
    error_type: str = "scheduler_error"
    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class AuthenticationError(SchedulerError):
    """Caller could not be identified (missing user, bad cron secret)."""

    status_code = 401
    error_type = "authentication_error"


class AuthorizationError(SchedulerError):
    """
    Caller is known but not allowed.

    Causes:
    - Not a member of the family
    - Not the owner of a blocked period
    - Family is deactivated
    """

    status_code = 403
    error_type = "authorization_error"


class PlanLimitError(SchedulerError):
    """Feature unavailable on the family's plan, or a plan limit was reached."""

    status_code = 403
    error_type = "plan_limit"


class NotFoundError(SchedulerError):
    """Entity does not exist in the caller's family."""

    status_code = 404
    error_type = "not_found"


class SchedulingValidationError(SchedulerError):
    """
    Request cannot be processed as given.

    Causes:
    - Parent roles not resolvable
    - Missing second family member
    - Inverted date range
    """

    status_code = 400
    error_type = "validation_error"


class DateValidationError(SchedulingValidationError):
    """Malformed or misaligned calendar date."""


class ScheduleConflictError(SchedulerError):
    """
    Event date falls inside a parent's blocked period.

    The message names the blocking parent; blocker_user_id identifies them.
    """

    status_code = 409
    error_type = "schedule_conflict"

    def __init__(
        self,
        message: str,
        blocker_user_id: Optional[str] = None,
        blocker_role: Optional[str] = None,
    ):
        super().__init__(message)
        self.blocker_user_id = blocker_user_id
        self.blocker_role = blocker_role
