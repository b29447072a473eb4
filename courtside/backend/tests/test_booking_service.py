from datetime import datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from app.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OutsideAvailabilityError,
    PastBookingError,
    PastIntervalError,
    UnauthorizedError,
)
from app.core.intervals import TimeInterval
from app.db import models
from app.services import billing_service, booking_service, conflict_service
from app.services.conflict_service import ResourceRef


def tuesday(start_hour, end_hour, start_minute=0, end_minute=0):
    return TimeInterval(
        datetime(2025, 11, 4, start_hour, start_minute),
        datetime(2025, 11, 4, end_hour, end_minute),
    )


def book_court(session, clock, court, user, interval, **kwargs):
    return booking_service.create_booking(
        session,
        kind=models.BookingKind.court,
        owner_id=user.id,
        interval=interval,
        court_id=court.id,
        clock=clock,
        **kwargs,
    )


def count(session, model):
    return session.scalar(select(func.count(model.id)))


def test_court_reservations_reject_overlaps_but_allow_adjacent(db_session, seed, clock):
    court = seed.court(hourly_price=Decimal("50.00"))
    first_user = seed.user("U1")
    second_user = seed.user("U2")

    first = book_court(db_session, clock, court, first_user, tuesday(10, 11))
    assert first.booking.price == Decimal("50.00")
    assert first.booking.status == models.BookingStatus.pending
    assert first.charge.amount == Decimal("50.00")
    assert first.charge.status == models.ChargeStatus.pending
    assert first.charge.reference_type == models.ChargeReference.court_booking
    assert first.charge.reference_id == first.booking.id
    assert first.charge.payment_url.endswith(first.charge.order_id)

    with pytest.raises(ConflictError):
        book_court(db_session, clock, court, second_user, tuesday(10, 11, 30, 30))

    adjacent = book_court(db_session, clock, court, second_user, tuesday(11, 12))
    assert adjacent.booking.id != first.booking.id
    assert count(db_session, models.Booking) == 2


def test_cancelling_personal_session_cancels_its_charge(db_session, seed, clock):
    student = seed.user()
    instructor = seed.instructor(hourly_rate=Decimal("80.00"))
    seed.window(instructor, weekday=1, starts_at=time(8, 0), ends_at=time(18, 0))
    interval = TimeInterval(datetime(2025, 12, 1, 14), datetime(2025, 12, 1, 15))

    created = booking_service.create_booking(
        db_session,
        kind=models.BookingKind.personal,
        owner_id=student.id,
        interval=interval,
        instructor_id=instructor.id,
        clock=clock,
    )
    assert created.booking.price == Decimal("80.00")
    assert created.charge.reference_type == models.ChargeReference.personal_session

    result = booking_service.cancel_booking(
        db_session, created.booking.id, actor=student, clock=clock
    )

    assert result.booking.status == models.BookingStatus.cancelled
    assert result.charge_cancelled is True
    assert result.already_cancelled is False
    assert result.booking.canceled_by == f"student:{student.id}"
    assert result.booking.canceled_at == clock.now()
    charge = db_session.get(models.Charge, created.charge.id)
    assert charge.status == models.ChargeStatus.cancelled


def test_personal_session_must_fit_instructor_window(db_session, seed, clock):
    student = seed.user()
    instructor = seed.instructor()
    seed.window(instructor, weekday=2, starts_at=time(8, 0), ends_at=time(12, 0))

    with pytest.raises(OutsideAvailabilityError):
        booking_service.create_booking(
            db_session,
            kind=models.BookingKind.personal,
            owner_id=student.id,
            interval=tuesday(11, 13),
            instructor_id=instructor.id,
            clock=clock,
        )

    check = booking_service.check_availability(
        db_session,
        kind=models.BookingKind.personal,
        interval=TimeInterval(datetime(2025, 11, 5, 9), datetime(2025, 11, 5, 10)),
        instructor_id=instructor.id,
    )
    assert check.available is False
    assert check.error is OutsideAvailabilityError


def test_class_occurrences_count_as_commitments(db_session, seed, clock):
    student = seed.user()
    court = seed.court()
    instructor = seed.instructor()
    seed.window(instructor, weekday=2, starts_at=time(8, 0), ends_at=time(22, 0))
    sport_class = seed.sport_class()
    seed.occurrence(
        sport_class, instructor, court, datetime(2025, 11, 4, 19), datetime(2025, 11, 4, 20)
    )

    with pytest.raises(ConflictError):
        book_court(db_session, clock, court, student, tuesday(19, 20, 30, 30))
    with pytest.raises(ConflictError):
        booking_service.create_booking(
            db_session,
            kind=models.BookingKind.personal,
            owner_id=student.id,
            interval=tuesday(18, 19, 30, 30),
            instructor_id=instructor.id,
            clock=clock,
        )
    assert count(db_session, models.Booking) == 0


def test_unknown_or_inactive_resources(db_session, seed, clock):
    student = seed.user()
    closed = seed.court(is_active=False)

    with pytest.raises(NotFoundError):
        book_court(db_session, clock, closed, student, tuesday(10, 11))
    check = booking_service.check_availability(
        db_session, kind=models.BookingKind.court, interval=tuesday(10, 11), court_id=999
    )
    assert check.available is False
    assert check.error is NotFoundError


def test_past_interval_is_rejected(db_session, seed, clock):
    court = seed.court()
    student = seed.user()
    interval = TimeInterval(datetime(2025, 11, 3, 7), datetime(2025, 11, 3, 9))

    with pytest.raises(PastIntervalError):
        book_court(db_session, clock, court, student, interval)


def test_admin_and_free_bookings_start_confirmed(db_session, seed, clock):
    student = seed.user()
    paid_court = seed.court("Paid")
    free_court = seed.court("Free", hourly_price=None)

    by_admin = book_court(db_session, clock, paid_court, student, tuesday(10, 11), admin=True)
    assert by_admin.booking.status == models.BookingStatus.confirmed
    assert by_admin.charge is not None

    free = book_court(db_session, clock, free_court, student, tuesday(10, 11))
    assert free.booking.status == models.BookingStatus.confirmed
    assert free.booking.price == Decimal("0.00")
    assert free.charge is None


def test_billing_failure_rolls_back_booking(db_session, seed, clock, monkeypatch):
    court = seed.court()
    student = seed.user()

    class BrokenGateway:
        def create_payment(self, **kwargs):
            raise RuntimeError("gateway down")

    monkeypatch.setattr(billing_service.gateway, "get_gateway", lambda settings: BrokenGateway())

    with pytest.raises(RuntimeError):
        book_court(db_session, clock, court, student, tuesday(10, 11))

    assert count(db_session, models.Booking) == 0
    assert count(db_session, models.Charge) == 0


def test_reschedule_reprices_and_replaces_charge(db_session, seed, clock):
    court = seed.court(hourly_price=Decimal("50.00"))
    student = seed.user()
    created = book_court(db_session, clock, court, student, tuesday(10, 11))

    # overlapping its own old slot is fine
    moved = booking_service.reschedule_booking(
        db_session, created.booking.id, interval=tuesday(10, 12, 30, 0), actor=student, clock=clock
    )

    assert moved.booking.starts_at == datetime(2025, 11, 4, 10, 30)
    assert moved.booking.price == Decimal("75.00")
    assert moved.charge.amount == Decimal("75.00")
    assert db_session.get(models.Charge, created.charge.id).status == models.ChargeStatus.cancelled
    assert billing_service.find_open_charge(
        db_session, models.ChargeReference.court_booking, created.booking.id
    ).id == moved.charge.id


def test_reschedule_bills_a_booking_that_was_free(db_session, seed, clock):
    court = seed.court(hourly_price=None)
    student = seed.user()
    created = book_court(db_session, clock, court, student, tuesday(10, 11))
    assert created.charge is None
    court.hourly_price = Decimal("50.00")
    db_session.commit()

    moved = booking_service.reschedule_booking(
        db_session, created.booking.id, interval=tuesday(14, 15), actor=student, clock=clock
    )

    assert moved.booking.price == Decimal("50.00")
    assert moved.booking.status == models.BookingStatus.confirmed
    assert moved.charge.amount == Decimal("50.00")
    assert moved.charge.status == models.ChargeStatus.pending


def test_reschedule_after_payment_bills_only_the_difference(db_session, seed, clock):
    court = seed.court(hourly_price=Decimal("50.00"))
    student = seed.user()
    created = book_court(db_session, clock, court, student, tuesday(10, 11))
    created.charge.status = models.ChargeStatus.paid
    db_session.commit()

    moved = booking_service.reschedule_booking(
        db_session, created.booking.id, interval=tuesday(10, 12), actor=student, clock=clock
    )

    assert moved.booking.price == Decimal("100.00")
    assert moved.charge.id != created.charge.id
    assert moved.charge.amount == Decimal("50.00")
    assert db_session.get(models.Charge, created.charge.id).status == models.ChargeStatus.paid
    assert billing_service.paid_amount(
        db_session, models.ChargeReference.court_booking, created.booking.id
    ) == Decimal("50.00")

    shorter = booking_service.reschedule_booking(
        db_session, created.booking.id, interval=tuesday(10, 11), actor=student, clock=clock
    )
    assert shorter.charge is None
    assert db_session.get(models.Charge, moved.charge.id).status == models.ChargeStatus.cancelled


def test_reschedule_keeps_an_open_charge_that_still_matches(db_session, seed, clock):
    court = seed.court(hourly_price=Decimal("50.00"))
    student = seed.user()
    created = book_court(db_session, clock, court, student, tuesday(10, 11))

    moved = booking_service.reschedule_booking(
        db_session, created.booking.id, interval=tuesday(15, 16), actor=student, clock=clock
    )

    assert moved.charge.id == created.charge.id
    assert count(db_session, models.Charge) == 1


def test_reschedule_checks_conflicts_and_owner(db_session, seed, clock):
    court = seed.court()
    owner = seed.user("Owner")
    other = seed.user("Other")
    mine = book_court(db_session, clock, court, owner, tuesday(10, 11))
    book_court(db_session, clock, court, other, tuesday(12, 13))

    with pytest.raises(ConflictError):
        booking_service.reschedule_booking(
            db_session, mine.booking.id, interval=tuesday(12, 13), actor=owner, clock=clock
        )
    with pytest.raises(UnauthorizedError):
        booking_service.reschedule_booking(
            db_session, mine.booking.id, interval=tuesday(14, 15), actor=other, clock=clock
        )
    unchanged = db_session.get(models.Booking, mine.booking.id)
    assert unchanged.starts_at == datetime(2025, 11, 4, 10)

    booking_service.cancel_booking(db_session, mine.booking.id, actor=owner, clock=clock)
    with pytest.raises(InvalidTransitionError):
        booking_service.reschedule_booking(
            db_session, mine.booking.id, interval=tuesday(14, 15), actor=owner, clock=clock
        )


def test_cancel_rules(db_session, seed, clock):
    court = seed.court()
    owner = seed.user("Owner")
    stranger = seed.user("Stranger")
    admin = seed.admin()
    created = book_court(db_session, clock, court, owner, tuesday(10, 11))
    booking_id = created.booking.id

    with pytest.raises(UnauthorizedError):
        booking_service.cancel_booking(db_session, booking_id, actor=stranger, clock=clock)
    with pytest.raises(UnauthorizedError):
        booking_service.cancel_booking(db_session, booking_id, actor=owner, force=True, clock=clock)

    clock.advance(days=1, hours=3)
    with pytest.raises(PastBookingError):
        booking_service.cancel_booking(db_session, booking_id, actor=owner, clock=clock)
    with pytest.raises(PastBookingError):
        booking_service.cancel_booking(db_session, booking_id, actor=admin, clock=clock)

    forced = booking_service.cancel_booking(
        db_session, booking_id, actor=admin, force=True, clock=clock
    )
    assert forced.booking.status == models.BookingStatus.cancelled
    assert forced.booking.canceled_by == f"admin:{admin.id}"
    audit = db_session.execute(select(models.AuditLog)).scalars().one()
    assert audit.action == "booking_force_canceled"
    assert audit.payload["booking_id"] == booking_id

    again = booking_service.cancel_booking(db_session, booking_id, actor=owner, clock=clock)
    assert again.already_cancelled is True
    assert again.charge_cancelled is False


def test_cancelled_booking_frees_the_slot(db_session, seed, clock):
    court = seed.court()
    first_user = seed.user("U1")
    second_user = seed.user("U2")
    created = book_court(db_session, clock, court, first_user, tuesday(10, 11))

    booking_service.cancel_booking(db_session, created.booking.id, actor=first_user, clock=clock)
    replacement = book_court(db_session, clock, court, second_user, tuesday(10, 11))

    assert replacement.booking.status == models.BookingStatus.pending


def test_confirm_booking_requires_admin(db_session, seed, clock):
    court = seed.court()
    student = seed.user()
    admin = seed.admin()
    created = book_court(db_session, clock, court, student, tuesday(10, 11))

    with pytest.raises(UnauthorizedError):
        booking_service.confirm_booking(db_session, created.booking.id, actor=student)

    confirmed = booking_service.confirm_booking(db_session, created.booking.id, actor=admin)
    assert confirmed.status == models.BookingStatus.confirmed
    with pytest.raises(InvalidTransitionError):
        booking_service.confirm_booking(db_session, created.booking.id, actor=admin)


def test_list_user_bookings(db_session, seed, clock):
    court = seed.court()
    student = seed.user()
    late = book_court(db_session, clock, court, student, tuesday(15, 16))
    early = book_court(db_session, clock, court, student, tuesday(9, 10))
    booking_service.cancel_booking(db_session, late.booking.id, actor=student, clock=clock)

    assert [b.id for b in booking_service.list_user_bookings(db_session, student.id)] == [
        early.booking.id
    ]
    everything = booking_service.list_user_bookings(
        db_session, student.id, include_cancelled=True
    )
    assert [b.id for b in everything] == [early.booking.id, late.booking.id]


def test_active_bookings_never_overlap(db_session, seed, clock):
    court = seed.court()
    users = [seed.user(f"U{i}") for i in range(3)]
    attempts = [(9, 0, 60), (9, 30, 60), (10, 0, 30), (10, 15, 90), (10, 30, 60), (11, 0, 45), (8, 0, 240)]

    for index, (hour, minute, minutes) in enumerate(attempts):
        interval = TimeInterval.starting(datetime(2025, 11, 4, hour, minute), minutes)
        try:
            book_court(db_session, clock, court, users[index % 3], interval)
        except ConflictError:
            pass

    active = [
        TimeInterval(b.starts_at, b.ends_at)
        for b in db_session.execute(select(models.Booking)).scalars()
        if b.status != models.BookingStatus.cancelled
    ]
    assert len(active) == 3
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            assert not first.overlaps(second)


def test_find_conflicts_lists_both_kinds(db_session, seed, clock):
    court = seed.court()
    instructor = seed.instructor()
    student = seed.user()
    sport_class = seed.sport_class()
    seed.occurrence(
        sport_class, instructor, court, datetime(2025, 11, 4, 19), datetime(2025, 11, 4, 20)
    )
    booked = book_court(db_session, clock, court, student, tuesday(18, 19))

    found = conflict_service.find_conflicts(
        db_session, ResourceRef.court(court.id), tuesday(18, 20, 30, 0)
    )
    assert {type(item) for item in found} == {models.Booking, models.ClassOccurrence}
    assert not conflict_service.has_conflict(
        db_session,
        ResourceRef.court(court.id),
        tuesday(18, 19),
        exclude_booking_id=booked.booking.id,
    )
