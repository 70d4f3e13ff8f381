"""
Exception classes for habitpulse.

Each class carries the message shown to the user and whether the failed
operation is safe to retry.
"""

from dataclasses import dataclass
from typing import Optional


class HabitPulseError(Exception):
    """Base exception for all habitpulse errors."""

    default_message = "An error occurred. Please try again."
    can_retry = True
    is_network_error = False

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(HabitPulseError):
    """Raised locally before any remote call; never retried."""

    default_message = "Invalid input."
    can_retry = False


class DuplicateCheckInError(ValidationError):
    """A `done` record already exists for the date key."""

    default_message = "Already completed for this date"

    def __init__(self, habit_id: str, date_key: str):
        self.habit_id = habit_id
        self.date_key = date_key
        super().__init__(f"{self.default_message} ({date_key})")


class ProgressOutOfRangeError(ValidationError):
    """Progress value outside the range the habit accepts."""

    def __init__(self, value: float, minimum: float, maximum: float):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"Progress value {value} must be between {minimum} and {maximum}")


class AuthorizationError(HabitPulseError):
    """Permission denied by the persistence collaborator."""

    default_message = "You do not have permission to perform this action. Please sign in again."
    can_retry = False


class AvailabilityError(HabitPulseError):
    """The persistence collaborator is offline or unavailable."""

    default_message = "Connection lost. Changes will sync when online"
    is_network_error = True

    @property
    def user_message(self) -> str:
        # the collaborator's own wording stays in str(); users always get the sync notice
        return self.default_message


class NotFoundError(HabitPulseError):
    """The requested habit or record does not exist."""

    default_message = "The requested data was not found."
    can_retry = False


class UnknownError(HabitPulseError):
    """Any other failure; the optimistic state is rolled back."""

    default_message = "Something went wrong. Please try again"


@dataclass
class UserFacingError:
    message: str
    can_retry: bool
    is_network_error: bool


def describe_error(error: BaseException) -> UserFacingError:
    """Turn any exception into the message and retry hints shown to the user."""
    if isinstance(error, HabitPulseError):
        return UserFacingError(
            message=error.user_message,
            can_retry=error.can_retry,
            is_network_error=error.is_network_error,
        )
    if isinstance(error, Exception) and str(error):
        return UserFacingError(message=str(error), can_retry=True, is_network_error=False)
    return UserFacingError(
        message="An unexpected error occurred. Please try again.",
        can_retry=True,
        is_network_error=False,
    )
