from datetime import date, datetime
from pydantic import BaseModel

from ..models import OccurrenceStatus


class OccurrenceGenerate(BaseModel):
    class_id: int
    period_start: date
    period_end: date


class Occurrence(BaseModel):
    id: int
    class_id: int
    instructor_id: int
    court_id: int
    starts_at: datetime
    ends_at: datetime
    status: OccurrenceStatus
    enrolled_count: int | None = None
    available_spots: int | None = None

    class Config:
        from_attributes = True


class GenerationResult(BaseModel):
    created: int
    skipped: int
    data: list[Occurrence]


class OccurrenceCancel(BaseModel):
    force: bool = False


class OccurrenceCancelResult(BaseModel):
    id: int
    status: OccurrenceStatus
    cancelled_enrollments: int
    cancelled_charges: int
    already_cancelled: bool
