import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.clock import Clock, system_clock
from ..core.constants import FORCE_CANCEL_ACTION
from ..core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OutsideAvailabilityError,
    PastBookingError,
    PastIntervalError,
    SchedulingError,
    UnauthorizedError,
)
from ..core.intervals import TimeInterval, duration_minutes
from ..core.permissions import ensure_admin, ensure_can_manage, is_admin
from ..db import models
from ..db.session import atomic, lock_row
from . import billing_service, conflict_service, notification_service, slot_service
from .conflict_service import ResourceRef
from .notification_service import Notification, format_local

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_CHARGE_REFERENCES = {
    models.BookingKind.court: models.ChargeReference.court_booking,
    models.BookingKind.personal: models.ChargeReference.personal_session,
}


@dataclass(slots=True)
class AvailabilityCheck:
    available: bool
    reason: str | None = None
    price: Decimal | None = None
    error: type[SchedulingError] | None = None

    def raise_if_unavailable(self) -> None:
        if not self.available:
            raise (self.error or ConflictError)(self.reason)


@dataclass(slots=True)
class BookingResult:
    booking: models.Booking
    charge: models.Charge | None = None


@dataclass(slots=True)
class BookingCancellation:
    booking: models.Booking
    charge_cancelled: bool = False
    already_cancelled: bool = False


def _resources_for(
    kind: models.BookingKind,
    court_id: int | None,
    instructor_id: int | None,
) -> list[ResourceRef]:
    if kind == models.BookingKind.court:
        if court_id is None:
            raise SchedulingError("Court reservations require a court")
        return [ResourceRef.court(court_id)]
    if instructor_id is None:
        raise SchedulingError("Personal sessions require an instructor")
    resources = [ResourceRef.instructor(instructor_id)]
    if court_id is not None:
        resources.append(ResourceRef.court(court_id))
    return resources


def _label(resource: ResourceRef) -> str:
    return resource.type.value.capitalize()


def compute_price(hourly_rate: Decimal | None, interval: TimeInterval) -> Decimal:
    if not hourly_rate:
        return Decimal("0.00")
    hours = Decimal(duration_minutes(interval)) / Decimal(60)
    return (Decimal(hourly_rate) * hours).quantize(_CENTS, rounding=ROUND_HALF_UP)


def check_availability(
    db: Session,
    *,
    kind: models.BookingKind,
    interval: TimeInterval,
    court_id: int | None = None,
    instructor_id: int | None = None,
    exclude_booking_id: int | None = None,
) -> AvailabilityCheck:
    """Decide whether ``interval`` can be booked; anything unknown answers no."""
    resources = _resources_for(kind, court_id, instructor_id)
    records = {}
    for resource in resources:
        record = conflict_service.get_resource(db, resource)
        if record is None or not record.is_active:
            return AvailabilityCheck(
                False, f"{_label(resource)} not found or inactive", error=NotFoundError
            )
        records[resource.type] = record

    if kind == models.BookingKind.personal:
        instructor = resources[0]
        window_row = slot_service.get_weekly_window(db, instructor, interval.start.date())
        if window_row is None:
            return AvailabilityCheck(
                False,
                "Instructor has no availability configured for this weekday",
                error=OutsideAvailabilityError,
            )
        window = TimeInterval.on(interval.start.date(), window_row.starts_at, window_row.ends_at)
        if not window.contains(interval):
            return AvailabilityCheck(
                False,
                "Requested time is outside the instructor's availability "
                f"({window_row.starts_at:%H:%M}-{window_row.ends_at:%H:%M})",
                error=OutsideAvailabilityError,
            )

    for resource in resources:
        if conflict_service.has_conflict(
            db, resource, interval, exclude_booking_id=exclude_booking_id
        ):
            return AvailabilityCheck(
                False, f"{_label(resource)} is already booked for this time", error=ConflictError
            )

    if kind == models.BookingKind.court:
        rate = records[models.ResourceType.court].hourly_price
    else:
        rate = records[models.ResourceType.instructor].hourly_rate
    return AvailabilityCheck(True, price=compute_price(rate, interval))


def _resource_name(booking: models.Booking) -> str:
    if booking.kind == models.BookingKind.court and booking.court:
        return booking.court.name
    if booking.instructor:
        return booking.instructor.name
    return booking.kind.value


def _describe(booking: models.Booking) -> str:
    title = "Court reservation" if booking.kind == models.BookingKind.court else "Personal session"
    return f"{title}: {_resource_name(booking)} - {format_local(booking.starts_at)}"


def _notification(booking: models.Booking, notification_type: str) -> Notification:
    return Notification(
        user_id=booking.user_id,
        type=notification_type,
        params={
            "resource": _resource_name(booking),
            "starts_at": format_local(booking.starts_at),
        },
    )


def _create_booking_charge(
    db: Session, booking: models.Booking, clock: Clock, amount: Decimal | None = None
) -> models.Charge:
    return billing_service.create_charge(
        db,
        user_id=booking.user_id,
        reference_type=_CHARGE_REFERENCES[booking.kind],
        reference_id=booking.id,
        amount=booking.price if amount is None else amount,
        description=_describe(booking),
        due_date=clock.today() + timedelta(days=get_settings().charge_due_days),
    )


def create_booking(
    db: Session,
    *,
    kind: models.BookingKind,
    owner_id: int,
    interval: TimeInterval,
    court_id: int | None = None,
    instructor_id: int | None = None,
    notes: str | None = None,
    admin: bool = False,
    clock: Clock = system_clock,
) -> BookingResult:
    if interval.start < clock.now():
        raise PastIntervalError(starts_at=interval.start.isoformat())
    resources = _resources_for(kind, court_id, instructor_id)

    with atomic(db):
        if db.get(models.User, owner_id) is None:
            raise NotFoundError("User not found", id=owner_id)
        conflict_service.lock_resources(db, resources)
        check = check_availability(
            db,
            kind=kind,
            interval=interval,
            court_id=court_id,
            instructor_id=instructor_id,
        )
        check.raise_if_unavailable()

        price = check.price or Decimal("0.00")
        booking = models.Booking(
            kind=kind,
            user_id=owner_id,
            court_id=court_id,
            instructor_id=instructor_id,
            starts_at=interval.start,
            ends_at=interval.end,
            price=price,
            notes=notes,
            status=(
                models.BookingStatus.confirmed
                if admin or price <= 0
                else models.BookingStatus.pending
            ),
        )
        db.add(booking)
        db.flush()
        charge = _create_booking_charge(db, booking, clock) if price > 0 else None

    logger.info(
        "Booking created",
        extra={"booking_id": booking.id, "kind": kind.value, "charge_id": charge.id if charge else None},
    )
    notification_service.notify([_notification(booking, "booking_created")])
    return BookingResult(booking=booking, charge=charge)


def reschedule_booking(
    db: Session,
    booking_id: int,
    *,
    interval: TimeInterval,
    actor: models.User,
    clock: Clock = system_clock,
) -> BookingResult:
    now = clock.now()
    if interval.start < now:
        raise PastIntervalError(starts_at=interval.start.isoformat())

    with atomic(db):
        booking = lock_row(db, models.Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", id=booking_id)
        ensure_can_manage(actor, booking)
        if booking.status == models.BookingStatus.cancelled:
            raise InvalidTransitionError("Cancelled bookings cannot be rescheduled")
        if booking.starts_at < now and not is_admin(actor):
            raise PastBookingError(starts_at=booking.starts_at.isoformat())

        conflict_service.lock_resources(
            db, _resources_for(booking.kind, booking.court_id, booking.instructor_id)
        )
        check = check_availability(
            db,
            kind=booking.kind,
            interval=interval,
            court_id=booking.court_id,
            instructor_id=booking.instructor_id,
            exclude_booking_id=booking.id,
        )
        check.raise_if_unavailable()

        booking.starts_at = interval.start
        booking.ends_at = interval.end
        booking.price = check.price or Decimal("0.00")
        charge = _settle_repriced_booking(db, booking, clock)

    logger.info(
        "Booking rescheduled",
        extra={"booking_id": booking.id, "charge_id": charge.id if charge else None},
    )
    return BookingResult(booking=booking, charge=charge)


def _settle_repriced_booking(
    db: Session, booking: models.Booking, clock: Clock
) -> models.Charge | None:
    """Leave exactly one open charge covering what is still owed on ``booking``.

    Paid charges count towards the new price, so only the difference is billed.
    The booking status is not touched.
    """
    reference_type = _CHARGE_REFERENCES[booking.kind]
    outstanding = booking.price - billing_service.paid_amount(db, reference_type, booking.id)
    open_charge = billing_service.find_open_charge(db, reference_type, booking.id)
    if open_charge is not None and open_charge.amount == outstanding:
        return open_charge
    if open_charge is not None:
        billing_service.cancel_charge(db, open_charge)
    if outstanding > 0:
        return _create_booking_charge(db, booking, clock, amount=outstanding)
    return None


def cancel_booking(
    db: Session,
    booking_id: int,
    *,
    actor: models.User,
    force: bool = False,
    clock: Clock = system_clock,
) -> BookingCancellation:
    """Cancel a booking and its unpaid charge.

    Cancelling twice is reported through ``already_cancelled`` rather than an
    error. Bookings that already started can only be cancelled by an admin
    passing ``force``.
    """
    with atomic(db):
        booking = lock_row(db, models.Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", id=booking_id)
        ensure_can_manage(actor, booking)
        if booking.status == models.BookingStatus.cancelled:
            return BookingCancellation(booking=booking, already_cancelled=True)
        if force and not is_admin(actor):
            raise UnauthorizedError("Only administrators can force a cancellation")

        now = clock.now()
        if booking.starts_at < now and not force:
            raise PastBookingError(starts_at=booking.starts_at.isoformat())

        models.BOOKING_STATES.advance(booking, models.BookingStatus.cancelled)
        booking.canceled_at = now
        booking.canceled_by = f"{actor.role.value}:{actor.id}"
        charge_cancelled = billing_service.cancel_open_charge(
            db, _CHARGE_REFERENCES[booking.kind], booking.id
        )
        if force:
            db.add(
                models.AuditLog(
                    actor_type=models.ActorType.admin,
                    actor_id=actor.id,
                    action=FORCE_CANCEL_ACTION,
                    payload={
                        "booking_id": booking.id,
                        "user_id": booking.user_id,
                        "starts_at": booking.starts_at.isoformat(),
                        "charge_cancelled": charge_cancelled,
                    },
                )
            )

    logger.info(
        "Booking canceled",
        extra={"booking_id": booking.id, "charge_cancelled": charge_cancelled, "forced": force},
    )
    notification_service.notify([_notification(booking, "booking_canceled")])
    return BookingCancellation(booking=booking, charge_cancelled=charge_cancelled)


def confirm_booking(db: Session, booking_id: int, *, actor: models.User) -> models.Booking:
    ensure_admin(actor)
    with atomic(db):
        booking = lock_row(db, models.Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", id=booking_id)
        models.BOOKING_STATES.advance(booking, models.BookingStatus.confirmed)

    logger.info("Booking confirmed", extra={"booking_id": booking.id})
    notification_service.notify([_notification(booking, "booking_confirmed")])
    return booking


def list_user_bookings(
    db: Session, user_id: int, *, include_cancelled: bool = False
) -> list[models.Booking]:
    stmt = select(models.Booking).where(models.Booking.user_id == user_id)
    if not include_cancelled:
        stmt = stmt.where(models.Booking.status != models.BookingStatus.cancelled)
    return list(db.execute(stmt.order_by(models.Booking.starts_at)).scalars().all())
