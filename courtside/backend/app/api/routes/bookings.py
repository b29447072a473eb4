from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import SchedulingError
from ...core.intervals import TimeInterval
from ...core.permissions import is_admin
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/check-availability", response_model=schemas.AvailabilityResult)
def check_availability(
    payload: schemas.AvailabilityQuery,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    try:
        result = booking_service.check_availability(
            db,
            kind=payload.kind,
            interval=TimeInterval(payload.starts_at, payload.ends_at),
            court_id=payload.court_id,
            instructor_id=payload.instructor_id,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.AvailabilityResult(
        available=result.available, reason=result.reason, price=result.price
    )


@router.get("/me", response_model=list[schemas.Booking])
def my_bookings(
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    return booking_service.list_user_bookings(db, user.id, include_cancelled=include_cancelled)


@router.post("", response_model=schemas.BookingWithCharge, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.BookingCreate,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    admin = is_admin(user)
    # students always book for themselves
    owner_id = payload.user_id if admin and payload.user_id else user.id
    try:
        result = booking_service.create_booking(
            db,
            kind=payload.kind,
            owner_id=owner_id,
            interval=TimeInterval(payload.starts_at, payload.ends_at),
            court_id=payload.court_id,
            instructor_id=payload.instructor_id,
            notes=payload.notes,
            admin=admin,
            clock=clock,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return {"data": result.booking, "charge": result.charge}


@router.patch("/{booking_id}", response_model=schemas.BookingWithCharge)
def reschedule_booking(
    booking_id: int,
    payload: schemas.BookingReschedule,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    try:
        result = booking_service.reschedule_booking(
            db,
            booking_id,
            interval=TimeInterval(payload.starts_at, payload.ends_at),
            actor=user,
            clock=clock,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return {"data": result.booking, "charge": result.charge}


@router.patch("/{booking_id}/cancel", response_model=schemas.BookingCancelResult)
def cancel_booking(
    booking_id: int,
    clock: deps.ClockDep,
    payload: schemas.BookingCancel | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    try:
        result = booking_service.cancel_booking(
            db,
            booking_id,
            actor=user,
            force=payload.force if payload else False,
            clock=clock,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.BookingCancelResult(
        id=result.booking.id,
        status=result.booking.status,
        charge_cancelled=result.charge_cancelled,
        already_cancelled=result.already_cancelled,
    )


@router.patch("/{booking_id}/confirm", response_model=schemas.Booking)
def confirm_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(deps.require_admin),
):
    try:
        return booking_service.confirm_booking(db, booking_id, actor=admin)
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
