"""
Error taxonomy of the scheduling engine.

Day-level errors (ConfigurationError, MalformedTime, ResolutionFailure) never
reach the UI: they are absorbed by the resolver / day loader and render as
"no availability". Confirm-time errors (BookingValidationError,
IdentityRequired, BookingCommitError) are raised to the caller of
SchedulingSession.confirm().
"""

from datetime import date
from typing import Optional


class SchedulerError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SchedulerError):
    """No default weekly schedule exists for the tenant."""


class MalformedTime(SchedulerError, ValueError):
    """A "HH:MM" string could not be parsed."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Malformed time: {value!r}")


class ResolutionFailure(SchedulerError):
    """A collaborator lookup failed while resolving a day."""

    def __init__(self, day: date, cause: Optional[BaseException] = None):
        self.day = day
        self.cause = cause
        super().__init__(f"Failed to resolve availability for {day.isoformat()}: {cause}")


class BookingValidationError(SchedulerError):
    """User-facing validation error on confirm. No booking was created."""


class IdentityRequired(SchedulerError):
    """Unauthenticated user must choose guest booking or log in first."""


class BookingCommitError(SchedulerError):
    """BookingStore.create failed. Cache and session selection are unchanged."""
