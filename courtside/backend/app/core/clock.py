"""Clock abstraction used for every past/future decision in the scheduling services.

Times are naive local wall-clock values: bookings are stored and returned
exactly as the facility displays them, without UTC conversion.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


system_clock = SystemClock()


def get_clock() -> Clock:
    return system_clock


__all__ = ["Clock", "SystemClock", "FixedClock", "system_clock", "get_clock"]
