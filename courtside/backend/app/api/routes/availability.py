from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import SchedulingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import slot_service
from ...services.conflict_service import ResourceRef

router = APIRouter(prefix="/availability", tags=["availability"])


def _slot_out(slot: slot_service.Slot) -> schemas.SlotOut:
    return schemas.SlotOut(
        starts_at=slot.starts_at,
        ends_at=slot.ends_at,
        start=slot.starts_at.strftime("%H:%M"),
        end=slot.ends_at.strftime("%H:%M"),
    )


@router.get("/{resource_type}/{resource_id}", response_model=schemas.DailyAvailability)
def daily_availability(
    resource_type: models.ResourceType,
    resource_id: int,
    clock: deps.ClockDep,
    day: date = Query(alias="date"),
    slot_minutes: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        result = slot_service.daily_availability(
            db,
            ResourceRef(resource_type, resource_id),
            day,
            slot_minutes,
            clock=clock,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    available = [_slot_out(slot) for slot in result.available]
    occupied = [_slot_out(slot) for slot in result.occupied]
    return schemas.DailyAvailability(
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=result.resource_name,
        date=result.day,
        message=result.message,
        available_slots=available,
        occupied_slots=occupied,
        total_slots=len(result.slots),
        total_available=len(available),
        total_occupied=len(occupied),
    )
