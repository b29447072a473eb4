from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import SchedulingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import enrollment_service, occurrence_service

router = APIRouter(prefix="/occurrences", tags=["occurrences"])


@router.get("", response_model=list[schemas.Occurrence])
def list_occurrences(
    class_id: int | None = None,
    from_dt: datetime | None = None,
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
):
    return occurrence_service.list_occurrences(
        db, class_id=class_id, from_dt=from_dt, include_cancelled=include_cancelled
    )


@router.post(
    "/generate", response_model=schemas.GenerationResult, status_code=status.HTTP_201_CREATED
)
def generate_occurrences(
    payload: schemas.OccurrenceGenerate,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_admin),
):
    try:
        result = occurrence_service.generate_occurrences(
            db, payload.class_id, payload.period_start, payload.period_end, clock=clock
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.GenerationResult(
        created=len(result.created),
        skipped=result.skipped,
        data=[schemas.Occurrence.model_validate(item) for item in result.created],
    )


@router.post("/{occurrence_id}/confirm", response_model=schemas.Occurrence)
def confirm_occurrence(
    occurrence_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(deps.require_admin),
):
    try:
        return occurrence_service.confirm_occurrence(db, occurrence_id, actor=admin)
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc


@router.post("/{occurrence_id}/cancel", response_model=schemas.OccurrenceCancelResult)
def cancel_occurrence(
    occurrence_id: int,
    clock: deps.ClockDep,
    payload: schemas.OccurrenceCancel | None = None,
    db: Session = Depends(get_db),
    admin: models.User = Depends(deps.require_admin),
):
    try:
        result = occurrence_service.cancel_occurrence(
            db,
            occurrence_id,
            actor=admin,
            force=payload.force if payload else False,
            clock=clock,
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.OccurrenceCancelResult(
        id=result.occurrence.id,
        status=result.occurrence.status,
        cancelled_enrollments=result.cancelled_enrollments,
        cancelled_charges=result.cancelled_charges,
        already_cancelled=result.already_cancelled,
    )


@router.get("/{occurrence_id}/enrollments", response_model=list[schemas.Enrollment])
def list_enrollments(
    occurrence_id: int,
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_admin),
):
    return enrollment_service.list_occurrence_enrollments(
        db, occurrence_id, include_cancelled=include_cancelled
    )


@router.post(
    "/{occurrence_id}/enrollments",
    response_model=schemas.EnrollmentWithCharge,
    status_code=status.HTTP_201_CREATED,
)
def admin_enroll(
    occurrence_id: int,
    payload: schemas.AdminEnrollmentCreate,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_admin),
):
    try:
        result = enrollment_service.enroll(
            db, occurrence_id, payload.user_id, admin=True, clock=clock
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return {"data": result.enrollment, "charge": result.charge, "reactivated": result.reactivated}
