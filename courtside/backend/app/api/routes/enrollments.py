from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.exceptions import SchedulingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import enrollment_service

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", response_model=schemas.EnrollmentWithCharge, status_code=status.HTTP_201_CREATED)
def enroll(
    payload: schemas.EnrollmentCreate,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    try:
        result = enrollment_service.enroll(db, payload.occurrence_id, user.id, clock=clock)
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return {"data": result.enrollment, "charge": result.charge, "reactivated": result.reactivated}


@router.get("/me", response_model=list[schemas.Enrollment])
def my_enrollments(
    clock: deps.ClockDep,
    enrollment_status: models.EnrollmentStatus | None = Query(None, alias="status"),
    upcoming_only: bool = False,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    return enrollment_service.list_user_enrollments(
        db, user.id, status=enrollment_status, upcoming_only=upcoming_only, clock=clock
    )


@router.delete("/{enrollment_id}", response_model=schemas.EnrollmentCancelResult)
def cancel_enrollment(
    enrollment_id: int,
    clock: deps.ClockDep,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    try:
        result = enrollment_service.cancel_enrollment(
            db, enrollment_id, actor=user, clock=clock
        )
    except SchedulingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.EnrollmentCancelResult(
        id=result.enrollment.id,
        status=result.enrollment.status,
        charge_cancelled=result.charge_cancelled,
        already_cancelled=result.already_cancelled,
    )
