from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, field_validator, model_validator

from ..models import BookingKind, BookingStatus
from .charge import Charge


class BookingInterval(BaseModel):
    starts_at: datetime
    ends_at: datetime

    @field_validator("starts_at", "ends_at")
    @classmethod
    def as_wall_clock(cls, value: datetime) -> datetime:
        # keep the digits the client sent, whatever offset came with them
        return value.replace(tzinfo=None)

    @model_validator(mode="after")
    def check_order(self):
        if self.starts_at >= self.ends_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class AvailabilityQuery(BookingInterval):
    kind: BookingKind
    court_id: int | None = None
    instructor_id: int | None = None


class AvailabilityResult(BaseModel):
    available: bool
    reason: str | None = None
    price: Decimal | None = None


class BookingCreate(AvailabilityQuery):
    user_id: int | None = None
    notes: str | None = None


class BookingReschedule(BookingInterval):
    pass


class BookingCancel(BaseModel):
    force: bool = False


class Booking(BaseModel):
    id: int
    kind: BookingKind
    user_id: int
    court_id: int | None = None
    instructor_id: int | None = None
    starts_at: datetime
    ends_at: datetime
    price: Decimal
    status: BookingStatus
    notes: str | None = None

    class Config:
        from_attributes = True


class BookingWithCharge(BaseModel):
    data: Booking
    charge: Charge | None = None


class BookingCancelResult(BaseModel):
    id: int
    status: BookingStatus
    charge_cancelled: bool
    already_cancelled: bool
