from . import (
    billing_service,
    booking_service,
    conflict_service,
    enrollment_service,
    notification_service,
    occurrence_service,
    slot_service,
)
__all__ = [
    "billing_service",
    "booking_service",
    "conflict_service",
    "enrollment_service",
    "notification_service",
    "occurrence_service",
    "slot_service",
]
