import datetime as dt
from pydantic import BaseModel

from ..models import ResourceType


class SlotOut(BaseModel):
    starts_at: dt.datetime
    ends_at: dt.datetime
    start: str
    end: str


class DailyAvailability(BaseModel):
    resource_type: ResourceType
    resource_id: int
    resource_name: str
    date: dt.date
    message: str | None = None
    available_slots: list[SlotOut]
    occupied_slots: list[SlotOut]
    total_slots: int
    total_available: int
    total_occupied: int
