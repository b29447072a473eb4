"""Common application-wide constants."""

# Step used by the daily slot generator when the caller does not pass one
DEFAULT_SLOT_MINUTES = 30

# Days until a charge created for a booking or enrollment is due
DEFAULT_CHARGE_DUE_DAYS = 7

# Audit log actions
FORCE_CANCEL_ACTION = "booking_force_canceled"
OCCURRENCE_CANCEL_ACTION = "occurrence_canceled"


__all__ = [
    "DEFAULT_SLOT_MINUTES",
    "DEFAULT_CHARGE_DUE_DAYS",
    "FORCE_CANCEL_ACTION",
    "OCCURRENCE_CANCEL_ACTION",
]
