"""Overlap detection between a candidate interval and a resource's commitments.

A court or instructor is committed by every non-cancelled booking that
references it (as primary or secondary resource) and by every non-cancelled
class occurrence held on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.intervals import TimeInterval
from ..db import models
from ..db.session import lock_row


@dataclass(frozen=True, slots=True)
class ResourceRef:
    type: models.ResourceType
    id: int

    @classmethod
    def court(cls, court_id: int) -> ResourceRef:
        return cls(models.ResourceType.court, court_id)

    @classmethod
    def instructor(cls, instructor_id: int) -> ResourceRef:
        return cls(models.ResourceType.instructor, instructor_id)

    @property
    def model(self) -> type[models.Court] | type[models.Instructor]:
        if self.type == models.ResourceType.court:
            return models.Court
        return models.Instructor

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.type.value, self.id)


def lock_resources(db: Session, resources: Iterable[ResourceRef]) -> None:
    """Lock court and instructor rows in one global (type, id) order.

    Every writer that holds more than one resource lock goes through here, so
    two transactions never wait on each other in opposite orders.
    """
    for resource in sorted(set(resources), key=lambda item: item.sort_key):
        lock_row(db, resource.model, resource.id)


def _booking_column(resource: ResourceRef):
    if resource.type == models.ResourceType.court:
        return models.Booking.court_id
    return models.Booking.instructor_id


def _occurrence_column(resource: ResourceRef):
    if resource.type == models.ResourceType.court:
        return models.ClassOccurrence.court_id
    return models.ClassOccurrence.instructor_id


def get_resource(db: Session, resource: ResourceRef) -> models.Court | models.Instructor | None:
    return db.get(resource.model, resource.id)


def conflicting_bookings(
    db: Session,
    resource: ResourceRef,
    interval: TimeInterval,
    *,
    exclude_booking_id: int | None = None,
) -> list[models.Booking]:
    stmt = select(models.Booking).where(
        _booking_column(resource) == resource.id,
        models.Booking.status.in_(models.ACTIVE_BOOKING_STATUSES),
        models.Booking.starts_at < interval.end,
        models.Booking.ends_at > interval.start,
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(models.Booking.id != exclude_booking_id)
    return list(db.execute(stmt.order_by(models.Booking.starts_at)).scalars().all())


def conflicting_occurrences(
    db: Session,
    resource: ResourceRef,
    interval: TimeInterval,
    *,
    exclude_occurrence_id: int | None = None,
) -> list[models.ClassOccurrence]:
    stmt = select(models.ClassOccurrence).where(
        _occurrence_column(resource) == resource.id,
        models.ClassOccurrence.status != models.OccurrenceStatus.cancelled,
        models.ClassOccurrence.starts_at < interval.end,
        models.ClassOccurrence.ends_at > interval.start,
    )
    if exclude_occurrence_id is not None:
        stmt = stmt.where(models.ClassOccurrence.id != exclude_occurrence_id)
    return list(
        db.execute(stmt.order_by(models.ClassOccurrence.starts_at)).scalars().all()
    )


def committed_intervals(
    db: Session,
    resource: ResourceRef,
    window: TimeInterval,
) -> list[TimeInterval]:
    """Intervals of every active commitment touching ``window``, ordered by start."""
    intervals = [
        TimeInterval(item.starts_at, item.ends_at)
        for item in find_conflicts(db, resource, window)
    ]
    return sorted(intervals, key=lambda interval: interval.start)


def find_conflicts(
    db: Session,
    resource: ResourceRef,
    interval: TimeInterval,
    *,
    exclude_booking_id: int | None = None,
    exclude_occurrence_id: int | None = None,
) -> list[models.Booking | models.ClassOccurrence]:
    return [
        *conflicting_bookings(db, resource, interval, exclude_booking_id=exclude_booking_id),
        *conflicting_occurrences(
            db, resource, interval, exclude_occurrence_id=exclude_occurrence_id
        ),
    ]


def has_conflict(
    db: Session,
    resource: ResourceRef,
    interval: TimeInterval,
    *,
    exclude_booking_id: int | None = None,
    exclude_occurrence_id: int | None = None,
) -> bool:
    if conflicting_bookings(db, resource, interval, exclude_booking_id=exclude_booking_id):
        return True
    return bool(
        conflicting_occurrences(
            db, resource, interval, exclude_occurrence_id=exclude_occurrence_id
        )
    )
