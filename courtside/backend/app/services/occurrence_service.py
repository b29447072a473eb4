import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.clock import Clock, system_clock
from ..core.constants import OCCURRENCE_CANCEL_ACTION
from ..core.exceptions import (
    InvalidIntervalError,
    NoScheduleError,
    NotFoundError,
    PastIntervalError,
    PastOccurrenceError,
)
from ..core.intervals import TimeInterval
from ..core.permissions import ensure_admin
from ..db import models
from ..db.session import atomic, lock_row
from . import billing_service, conflict_service, notification_service
from .conflict_service import ResourceRef
from .notification_service import Notification, format_local

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationResult:
    created: list[models.ClassOccurrence] = field(default_factory=list)
    skipped: int = 0


@dataclass(slots=True)
class OccurrenceCancellation:
    occurrence: models.ClassOccurrence
    cancelled_enrollments: int = 0
    cancelled_charges: int = 0
    already_cancelled: bool = False


def matching_dates(weekday: int, period_start: date, period_end: date) -> list[date]:
    """Every date in ``[period_start, period_end]`` falling on ISO ``weekday``."""
    first = period_start + timedelta(days=(weekday - period_start.isoweekday()) % 7)
    dates = []
    current = first
    while current <= period_end:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def _occurrence_exists(db: Session, class_id: int, starts_at: datetime) -> bool:
    return (
        db.scalar(
            select(func.count(models.ClassOccurrence.id)).where(
                models.ClassOccurrence.class_id == class_id,
                models.ClassOccurrence.starts_at == starts_at,
            )
        )
        > 0
    )


def generate_occurrences(
    db: Session,
    class_id: int,
    period_start: date,
    period_end: date,
    *,
    clock: Clock = system_clock,
) -> GenerationResult:
    """Expand the class's weekly schedule into dated occurrences.

    Candidates that already exist, that clash with the instructor's or the
    court's commitments, or that start in the past are counted as skipped.
    Re-running over an overlapping period never duplicates an occurrence.
    """
    if period_end < period_start:
        raise InvalidIntervalError(
            "Period end must not be before its start",
            start=period_start.isoformat(),
            end=period_end.isoformat(),
        )
    if period_start < clock.today():
        raise PastIntervalError("Period must start today or later", start=period_start.isoformat())

    result = GenerationResult()
    with atomic(db):
        sport_class = db.get(models.SportClass, class_id)
        if sport_class is None:
            raise NotFoundError("Class not found", id=class_id)
        entries = list(
            db.execute(
                select(models.ClassSchedule)
                .where(models.ClassSchedule.class_id == class_id)
                .order_by(
                    models.ClassSchedule.weekday,
                    models.ClassSchedule.starts_at,
                    models.ClassSchedule.id,
                )
            )
            .scalars()
            .all()
        )
        if not entries:
            raise NoScheduleError(class_id=class_id)

        resources_by_entry = {
            entry.id: [ResourceRef.court(entry.court_id), ResourceRef.instructor(entry.instructor_id)]
            for entry in entries
        }
        conflict_service.lock_resources(
            db, [resource for pair in resources_by_entry.values() for resource in pair]
        )

        now = clock.now()
        for entry in entries:
            resources = resources_by_entry[entry.id]
            for day in matching_dates(entry.weekday, period_start, period_end):
                candidate = TimeInterval.starting(
                    datetime.combine(day, entry.starts_at), sport_class.duration_min
                )
                if candidate.start < now or _occurrence_exists(db, class_id, candidate.start):
                    result.skipped += 1
                    continue
                if any(conflict_service.has_conflict(db, resource, candidate) for resource in resources):
                    logger.debug(
                        "Skipping conflicting occurrence",
                        extra={"class_id": class_id, "starts_at": candidate.start.isoformat()},
                    )
                    result.skipped += 1
                    continue
                occurrence = models.ClassOccurrence(
                    class_id=class_id,
                    instructor_id=entry.instructor_id,
                    court_id=entry.court_id,
                    starts_at=candidate.start,
                    ends_at=candidate.end,
                    status=models.OccurrenceStatus.scheduled,
                )
                db.add(occurrence)
                db.flush()
                result.created.append(occurrence)

    logger.info(
        "Occurrences generated",
        extra={"class_id": class_id, "created_count": len(result.created), "skipped": result.skipped},
    )
    return result


def cancel_occurrence(
    db: Session,
    occurrence_id: int,
    *,
    actor: models.User,
    force: bool = False,
    clock: Clock = system_clock,
) -> OccurrenceCancellation:
    ensure_admin(actor)
    notifications: list[Notification] = []
    with atomic(db):
        occurrence = lock_row(db, models.ClassOccurrence, occurrence_id)
        if occurrence is None:
            raise NotFoundError("Class occurrence not found", id=occurrence_id)
        if occurrence.status == models.OccurrenceStatus.cancelled:
            return OccurrenceCancellation(occurrence=occurrence, already_cancelled=True)
        if occurrence.starts_at < clock.now() and not force:
            raise PastOccurrenceError(starts_at=occurrence.starts_at.isoformat())

        models.OCCURRENCE_STATES.advance(occurrence, models.OccurrenceStatus.cancelled)
        enrollments = (
            db.execute(
                select(models.Enrollment).where(
                    models.Enrollment.occurrence_id == occurrence.id,
                    models.Enrollment.status == models.EnrollmentStatus.enrolled,
                )
            )
            .scalars()
            .all()
        )
        outcome = OccurrenceCancellation(occurrence=occurrence)
        class_name = occurrence.sport_class.name if occurrence.sport_class else "Class"
        for enrollment in enrollments:
            models.ENROLLMENT_STATES.advance(enrollment, models.EnrollmentStatus.cancelled)
            outcome.cancelled_enrollments += 1
            if billing_service.cancel_open_charge(
                db, models.ChargeReference.class_enrollment, enrollment.id
            ):
                outcome.cancelled_charges += 1
            notifications.append(
                Notification(
                    user_id=enrollment.user_id,
                    type="occurrence_canceled",
                    params={"class_name": class_name, "starts_at": format_local(occurrence.starts_at)},
                )
            )

        db.add(
            models.AuditLog(
                actor_type=models.ActorType.admin,
                actor_id=actor.id,
                action=OCCURRENCE_CANCEL_ACTION,
                payload={
                    "occurrence_id": occurrence.id,
                    "class_id": occurrence.class_id,
                    "starts_at": occurrence.starts_at.isoformat(),
                    "cancelled_enrollments": outcome.cancelled_enrollments,
                    "forced": force,
                },
            )
        )

    logger.info(
        "Occurrence canceled",
        extra={"occurrence_id": occurrence.id, "cancelled_enrollments": outcome.cancelled_enrollments},
    )
    notification_service.notify(notifications)
    return outcome


def confirm_occurrence(
    db: Session, occurrence_id: int, *, actor: models.User
) -> models.ClassOccurrence:
    ensure_admin(actor)
    with atomic(db):
        occurrence = lock_row(db, models.ClassOccurrence, occurrence_id)
        if occurrence is None:
            raise NotFoundError("Class occurrence not found", id=occurrence_id)
        models.OCCURRENCE_STATES.advance(occurrence, models.OccurrenceStatus.confirmed)
    return occurrence


def enrolled_counts(db: Session, occurrence_ids: list[int]) -> dict[int, int]:
    if not occurrence_ids:
        return {}
    rows = db.execute(
        select(models.Enrollment.occurrence_id, func.count(models.Enrollment.id))
        .where(
            models.Enrollment.occurrence_id.in_(occurrence_ids),
            models.Enrollment.status == models.EnrollmentStatus.enrolled,
        )
        .group_by(models.Enrollment.occurrence_id)
    ).all()
    return {occurrence_id: int(count) for occurrence_id, count in rows}


def list_occurrences(
    db: Session,
    *,
    class_id: int | None = None,
    from_dt: datetime | None = None,
    include_cancelled: bool = False,
) -> list[models.ClassOccurrence]:
    stmt = select(models.ClassOccurrence).options(
        selectinload(models.ClassOccurrence.sport_class)
    )
    if class_id:
        stmt = stmt.where(models.ClassOccurrence.class_id == class_id)
    if from_dt:
        stmt = stmt.where(models.ClassOccurrence.starts_at >= from_dt)
    if not include_cancelled:
        stmt = stmt.where(models.ClassOccurrence.status != models.OccurrenceStatus.cancelled)
    occurrences = list(
        db.execute(stmt.order_by(models.ClassOccurrence.starts_at)).scalars().all()
    )
    counts = enrolled_counts(db, [occurrence.id for occurrence in occurrences])
    for occurrence in occurrences:
        capacity = occurrence.sport_class.capacity_max if occurrence.sport_class else 0
        enrolled = counts.get(occurrence.id, 0)
        setattr(occurrence, "enrolled_count", enrolled)
        setattr(occurrence, "available_spots", max(capacity - enrolled, 0))
    return occurrences
