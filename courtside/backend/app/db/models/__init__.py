from .user import User, UserRole
from .court import Court
from .instructor import Instructor
from .availability import WeeklyAvailability, ResourceType
from .booking import (
    Booking,
    BookingKind,
    BookingStatus,
    BOOKING_STATES,
    ACTIVE_BOOKING_STATUSES,
)
from .sport_class import SportClass
from .class_schedule import ClassSchedule
from .class_occurrence import ClassOccurrence, OccurrenceStatus, OCCURRENCE_STATES
from .enrollment import Enrollment, EnrollmentStatus, ENROLLMENT_STATES
from .charge import (
    Charge,
    ChargeStatus,
    ChargeReference,
    CHARGE_STATES,
    OPEN_CHARGE_STATUSES,
)
from .audit_log import AuditLog, ActorType
