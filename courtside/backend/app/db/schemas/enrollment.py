from datetime import datetime
from pydantic import BaseModel

from ..models import EnrollmentStatus
from .charge import Charge


class EnrollmentCreate(BaseModel):
    occurrence_id: int


class AdminEnrollmentCreate(BaseModel):
    user_id: int


class Enrollment(BaseModel):
    id: int
    occurrence_id: int
    class_id: int
    user_id: int
    status: EnrollmentStatus
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class EnrollmentWithCharge(BaseModel):
    data: Enrollment
    charge: Charge | None = None
    reactivated: bool = False


class EnrollmentCancelResult(BaseModel):
    id: int
    status: EnrollmentStatus
    charge_cancelled: bool
    already_cancelled: bool
