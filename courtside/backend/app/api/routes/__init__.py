from . import (
    availability,
    bookings,
    occurrences,
    enrollments,
)

__all__ = [
    "availability",
    "bookings",
    "occurrences",
    "enrollments",
]
