import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.clock import Clock, system_clock
from ..core.exceptions import (
    AlreadyEnrolledError,
    CapacityExceededError,
    NotFoundError,
    OccurrenceNotOpenError,
    PastOccurrenceError,
)
from ..core.permissions import ensure_can_manage, is_admin
from ..db import models
from ..db.session import atomic, lock_row
from . import billing_service, notification_service
from .notification_service import Notification, format_local

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrollmentResult:
    enrollment: models.Enrollment
    charge: models.Charge | None = None
    reactivated: bool = False


@dataclass(slots=True)
class EnrollmentCancellation:
    enrollment: models.Enrollment
    charge_cancelled: bool = False
    already_cancelled: bool = False


def count_enrolled(db: Session, occurrence_id: int) -> int:
    return db.scalar(
        select(func.count(models.Enrollment.id)).where(
            models.Enrollment.occurrence_id == occurrence_id,
            models.Enrollment.status == models.EnrollmentStatus.enrolled,
        )
    ) or 0


def _notification(
    enrollment: models.Enrollment, occurrence: models.ClassOccurrence, notification_type: str
) -> Notification:
    return Notification(
        user_id=enrollment.user_id,
        type=notification_type,
        params={
            "class_name": occurrence.sport_class.name,
            "starts_at": format_local(occurrence.starts_at),
        },
    )


_UNIQUE_ENROLLMENT = "uq_enrollment_occurrence_user"
# sqlite names the columns instead of the constraint
_UNIQUE_ENROLLMENT_COLUMNS = "enrollments.occurrence_id, enrollments.user_id"


def _is_duplicate_enrollment(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint is not None:
        return constraint == _UNIQUE_ENROLLMENT
    message = str(exc.orig)
    return _UNIQUE_ENROLLMENT in message or _UNIQUE_ENROLLMENT_COLUMNS in message


def enroll(
    db: Session,
    occurrence_id: int,
    user_id: int,
    *,
    admin: bool = False,
    clock: Clock = system_clock,
) -> EnrollmentResult:
    """Admit ``user_id`` into an occurrence, reusing a cancelled enrollment row.

    The occurrence row stays locked from the capacity count until commit, so
    two concurrent requests cannot both take the last spot.
    """
    open_statuses = {models.OccurrenceStatus.scheduled}
    if admin:
        open_statuses.add(models.OccurrenceStatus.confirmed)

    try:
        with atomic(db):
            occurrence = lock_row(db, models.ClassOccurrence, occurrence_id)
            if occurrence is None:
                raise NotFoundError("Class occurrence not found", id=occurrence_id)
            if occurrence.status not in open_statuses:
                raise OccurrenceNotOpenError(status=occurrence.status.value)
            if occurrence.starts_at < clock.now():
                raise PastOccurrenceError(starts_at=occurrence.starts_at.isoformat())
            if db.get(models.User, user_id) is None:
                raise NotFoundError("User not found", id=user_id)

            existing = db.execute(
                select(models.Enrollment).where(
                    models.Enrollment.occurrence_id == occurrence.id,
                    models.Enrollment.user_id == user_id,
                )
            ).scalar_one_or_none()
            if existing and existing.status == models.EnrollmentStatus.enrolled:
                raise AlreadyEnrolledError()

            sport_class = occurrence.sport_class
            enrolled = count_enrolled(db, occurrence.id)
            if enrolled >= sport_class.capacity_max:
                raise CapacityExceededError(
                    capacity=sport_class.capacity_max, enrolled=enrolled
                )

            reactivated = existing is not None
            if existing:
                enrollment = existing
                models.ENROLLMENT_STATES.advance(enrollment, models.EnrollmentStatus.enrolled)
            else:
                enrollment = models.Enrollment(
                    occurrence_id=occurrence.id,
                    class_id=occurrence.class_id,
                    user_id=user_id,
                    status=models.EnrollmentStatus.enrolled,
                )
                db.add(enrollment)
            db.flush()

            charge = None
            price = sport_class.unit_price
            if price is not None and Decimal(price) > 0:
                charge = billing_service.create_charge(
                    db,
                    user_id=user_id,
                    reference_type=models.ChargeReference.class_enrollment,
                    reference_id=enrollment.id,
                    amount=Decimal(price),
                    description=f"Class: {sport_class.name} - {format_local(occurrence.starts_at)}",
                    due_date=clock.today() + timedelta(days=get_settings().charge_due_days),
                )
    except IntegrityError as exc:
        if _is_duplicate_enrollment(exc):
            raise AlreadyEnrolledError() from exc
        raise

    logger.info(
        "Enrollment admitted",
        extra={"enrollment_id": enrollment.id, "occurrence_id": occurrence.id, "reactivated": reactivated},
    )
    notification_service.notify([_notification(enrollment, occurrence, "enrollment_created")])
    return EnrollmentResult(enrollment=enrollment, charge=charge, reactivated=reactivated)


def cancel_enrollment(
    db: Session,
    enrollment_id: int,
    *,
    actor: models.User,
    clock: Clock = system_clock,
) -> EnrollmentCancellation:
    with atomic(db):
        enrollment = db.get(models.Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", id=enrollment_id)
        ensure_can_manage(actor, enrollment)
        occurrence = lock_row(db, models.ClassOccurrence, enrollment.occurrence_id)
        enrollment = lock_row(db, models.Enrollment, enrollment_id)
        if enrollment.status == models.EnrollmentStatus.cancelled:
            return EnrollmentCancellation(enrollment=enrollment, already_cancelled=True)
        if occurrence.starts_at < clock.now() and not is_admin(actor):
            raise PastOccurrenceError(starts_at=occurrence.starts_at.isoformat())

        models.ENROLLMENT_STATES.advance(enrollment, models.EnrollmentStatus.cancelled)
        charge_cancelled = billing_service.cancel_open_charge(
            db, models.ChargeReference.class_enrollment, enrollment.id
        )

    logger.info(
        "Enrollment canceled",
        extra={"enrollment_id": enrollment.id, "charge_cancelled": charge_cancelled},
    )
    notification_service.notify([_notification(enrollment, occurrence, "enrollment_canceled")])
    return EnrollmentCancellation(enrollment=enrollment, charge_cancelled=charge_cancelled)


def list_occurrence_enrollments(
    db: Session, occurrence_id: int, *, include_cancelled: bool = False
) -> list[models.Enrollment]:
    stmt = select(models.Enrollment).where(models.Enrollment.occurrence_id == occurrence_id)
    if not include_cancelled:
        stmt = stmt.where(models.Enrollment.status == models.EnrollmentStatus.enrolled)
    return list(db.execute(stmt.order_by(models.Enrollment.id)).scalars().all())


def list_user_enrollments(
    db: Session,
    user_id: int,
    *,
    status: models.EnrollmentStatus | None = None,
    upcoming_only: bool = False,
    clock: Clock = system_clock,
) -> list[models.Enrollment]:
    """A student's enrollments, newest first; only active ones unless ``status`` says otherwise."""
    stmt = select(models.Enrollment).where(
        models.Enrollment.user_id == user_id,
        models.Enrollment.status == (status or models.EnrollmentStatus.enrolled),
    )
    if upcoming_only:
        stmt = stmt.join(models.ClassOccurrence).where(
            models.ClassOccurrence.starts_at > clock.now()
        )
    stmt = stmt.order_by(models.Enrollment.created_at.desc(), models.Enrollment.id.desc())
    return list(db.execute(stmt).scalars().all())
