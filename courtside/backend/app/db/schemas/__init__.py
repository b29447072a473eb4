from .availability import DailyAvailability, SlotOut
from .charge import Charge
from .booking import (
    AvailabilityQuery,
    AvailabilityResult,
    Booking,
    BookingCancel,
    BookingCancelResult,
    BookingCreate,
    BookingReschedule,
    BookingWithCharge,
)
from .occurrence import (
    GenerationResult,
    Occurrence,
    OccurrenceCancel,
    OccurrenceCancelResult,
    OccurrenceGenerate,
)
from .enrollment import (
    AdminEnrollmentCreate,
    Enrollment,
    EnrollmentCancelResult,
    EnrollmentCreate,
    EnrollmentWithCharge,
)
