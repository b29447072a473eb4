from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.clock import Clock, system_clock
from ..core.exceptions import InvalidIntervalError, NotFoundError
from ..core.intervals import TimeInterval
from ..db import models
from . import conflict_service
from .conflict_service import ResourceRef


@dataclass(frozen=True, slots=True)
class Slot:
    interval: TimeInterval
    available: bool

    @property
    def starts_at(self) -> datetime:
        return self.interval.start

    @property
    def ends_at(self) -> datetime:
        return self.interval.end


@dataclass(slots=True)
class DailyAvailability:
    resource: ResourceRef
    resource_name: str
    day: date
    slots: list[Slot] = field(default_factory=list)
    message: str | None = None

    @property
    def available(self) -> list[Slot]:
        return [slot for slot in self.slots if slot.available]

    @property
    def occupied(self) -> list[Slot]:
        return [slot for slot in self.slots if not slot.available]


def get_weekly_window(
    db: Session, resource: ResourceRef, day: date
) -> models.WeeklyAvailability | None:
    return db.execute(
        select(models.WeeklyAvailability).where(
            models.WeeklyAvailability.resource_type == resource.type,
            models.WeeklyAvailability.resource_id == resource.id,
            models.WeeklyAvailability.weekday == day.isoweekday(),
        )
    ).scalar_one_or_none()


def _slot_step(slot_minutes: int | None) -> timedelta:
    if slot_minutes is not None and slot_minutes <= 0:
        raise InvalidIntervalError("slot_minutes must be positive", slot_minutes=slot_minutes)
    return timedelta(minutes=slot_minutes or get_settings().slot_size_minutes)


def _get_record(db: Session, resource: ResourceRef):
    record = conflict_service.get_resource(db, resource)
    if record is None:
        raise NotFoundError(f"{resource.type.value.capitalize()} not found", id=resource.id)
    return record


def _slots_in_window(
    db: Session,
    resource: ResourceRef,
    day: date,
    window_row: models.WeeklyAvailability,
    step: timedelta,
) -> list[Slot]:
    window = TimeInterval.on(day, window_row.starts_at, window_row.ends_at)
    committed = conflict_service.committed_intervals(db, resource, window)

    slots: list[Slot] = []
    current = window.start
    while current + step <= window.end:
        candidate = TimeInterval(current, current + step)
        busy = any(candidate.overlaps(interval) for interval in committed)
        slots.append(Slot(interval=candidate, available=not busy))
        current += step
    return slots


def generate_daily_slots(
    db: Session,
    resource: ResourceRef,
    day: date,
    slot_minutes: int | None = None,
    *,
    clock: Clock = system_clock,
) -> list[Slot]:
    """Split the resource's window for ``day`` into fixed-size slots.

    Returns an empty list for past days and for weekdays without a configured
    window. A trailing remainder shorter than ``slot_minutes`` is dropped.
    Reads only; calling it twice against unchanged bookings yields equal lists.
    """
    step = _slot_step(slot_minutes)
    _get_record(db, resource)
    if day < clock.today():
        return []
    window_row = get_weekly_window(db, resource, day)
    if window_row is None:
        return []
    return _slots_in_window(db, resource, day, window_row, step)


def daily_availability(
    db: Session,
    resource: ResourceRef,
    day: date,
    slot_minutes: int | None = None,
    *,
    clock: Clock = system_clock,
) -> DailyAvailability:
    step = _slot_step(slot_minutes)
    record = _get_record(db, resource)
    result = DailyAvailability(resource=resource, resource_name=record.name, day=day)
    if day < clock.today():
        result.message = "Date must be today or later"
        return result
    window_row = get_weekly_window(db, resource, day)
    if window_row is None:
        result.message = "No availability configured for this weekday"
        return result
    result.slots = _slots_in_window(db, resource, day, window_row, step)
    return result
