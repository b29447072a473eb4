"""Half-open time intervals ``[start, end)``.

Touching intervals (one ends exactly when the other starts) never overlap, so
back-to-back bookings on the same court are allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .exceptions import InvalidIntervalError


@dataclass(frozen=True, slots=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidIntervalError(
                start=self.start.isoformat(), end=self.end.isoformat()
            )

    @classmethod
    def on(cls, day: date, start: time, end: time) -> TimeInterval:
        return cls(datetime.combine(day, start), datetime.combine(day, end))

    @classmethod
    def starting(cls, start: datetime, minutes: int) -> TimeInterval:
        return cls(start, start + timedelta(minutes=minutes))

    def overlaps(self, other: TimeInterval) -> bool:
        return overlaps(self, other)

    def contains(self, other: TimeInterval) -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return duration_minutes(self)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def duration_minutes(interval: TimeInterval) -> int:
    return int(interval.duration.total_seconds() // 60)


__all__ = ["TimeInterval", "overlaps", "duration_minutes"]
