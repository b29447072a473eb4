"""Scheduling error taxonomy.

Every error here is an expected condition the caller can recover from. Routes
translate them into HTTP responses using ``status_code``; anything else
(database down, payment gateway exploding) propagates untouched.
"""

from typing import Any


class SchedulingError(Exception):
    code = "SCHEDULING_ERROR"
    status_code = 400
    default_message = "Scheduling operation failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidIntervalError(SchedulingError):
    code = "INVALID_INTERVAL"
    status_code = 422
    default_message = "Interval end must be after its start"


class ConflictError(SchedulingError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Time range overlaps an existing booking"


class OutsideAvailabilityError(ConflictError):
    code = "OUTSIDE_AVAILABILITY"
    default_message = "Time range is outside the configured availability"


class PastIntervalError(SchedulingError):
    code = "PAST_INTERVAL"
    default_message = "Time range starts in the past"


class PastBookingError(SchedulingError):
    code = "PAST_BOOKING"
    default_message = "Booking has already started"


class PastOccurrenceError(SchedulingError):
    code = "PAST_OCCURRENCE"
    default_message = "Class occurrence has already started"


class CapacityExceededError(SchedulingError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409
    default_message = "Class occurrence is full"


class NoScheduleError(SchedulingError):
    code = "NO_SCHEDULE"
    status_code = 422
    default_message = "Class has no weekly schedule configured"


class AlreadyEnrolledError(SchedulingError):
    code = "ALREADY_ENROLLED"
    status_code = 409
    default_message = "User is already enrolled in this occurrence"


class OccurrenceNotOpenError(SchedulingError):
    code = "OCCURRENCE_NOT_OPEN"
    default_message = "Class occurrence is not open for enrollment"


class InvalidTransitionError(SchedulingError):
    code = "INVALID_TRANSITION"


class NotFoundError(SchedulingError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class UnauthorizedError(SchedulingError):
    code = "UNAUTHORIZED"
    status_code = 403
    default_message = "Not allowed to modify this record"


__all__ = [
    "SchedulingError",
    "InvalidIntervalError",
    "ConflictError",
    "OutsideAvailabilityError",
    "PastIntervalError",
    "PastBookingError",
    "PastOccurrenceError",
    "CapacityExceededError",
    "NoScheduleError",
    "AlreadyEnrolledError",
    "OccurrenceNotOpenError",
    "InvalidTransitionError",
    "NotFoundError",
    "UnauthorizedError",
]
