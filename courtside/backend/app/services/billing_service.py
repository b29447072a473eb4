"""Charge creation and cancellation on behalf of the scheduling services.

Nothing here commits: charges are written inside the caller's transaction so a
booking and its charge are persisted together or not at all.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db import models
from .payments import gateway

logger = logging.getLogger(__name__)


def create_charge(
    db: Session,
    *,
    user_id: int,
    reference_type: models.ChargeReference,
    reference_id: int,
    amount: Decimal,
    description: str,
    due_date: date,
) -> models.Charge:
    settings = get_settings()
    order_id = str(uuid.uuid4())
    currency = (settings.payment_currency or "BRL").upper()
    charge = models.Charge(
        user_id=user_id,
        reference_type=reference_type,
        reference_id=reference_id,
        amount=amount,
        currency=currency,
        description=description,
        due_date=due_date,
        status=models.ChargeStatus.pending,
        order_id=order_id,
    )
    db.add(charge)
    db.flush()
    gateway_client = gateway.get_gateway(settings)
    gateway_response = gateway_client.create_payment(
        order_id=order_id,
        amount=amount,
        currency=currency,
        description=description,
        return_url=settings.payment_return_url,
        metadata={"user_id": user_id, "reference": f"{reference_type.value}:{reference_id}"},
    )
    charge.payment_url = (
        gateway_response.get("confirmation_url")
        or gateway_response.get("return_url")
    )
    logger.info(
        "Charge created",
        extra={"charge_id": charge.id, "reference_type": reference_type.value, "reference_id": reference_id},
    )
    return charge


def find_open_charge(
    db: Session,
    reference_type: models.ChargeReference,
    reference_id: int,
) -> models.Charge | None:
    return (
        db.execute(
            select(models.Charge)
            .where(
                models.Charge.reference_type == reference_type,
                models.Charge.reference_id == reference_id,
                models.Charge.status.in_(models.OPEN_CHARGE_STATUSES),
            )
            .order_by(models.Charge.id.desc())
        )
        .scalars()
        .first()
    )


def paid_amount(
    db: Session,
    reference_type: models.ChargeReference,
    reference_id: int,
) -> Decimal:
    """Total already settled for a reference; refunded charges do not count."""
    total = db.scalar(
        select(func.coalesce(func.sum(models.Charge.amount), 0)).where(
            models.Charge.reference_type == reference_type,
            models.Charge.reference_id == reference_id,
            models.Charge.status == models.ChargeStatus.paid,
        )
    )
    return Decimal(str(total or 0))


def cancel_charge(db: Session, charge: models.Charge) -> bool:
    """Cancel an unpaid charge; paid, refunded or cancelled charges are left alone."""
    if charge.status not in models.OPEN_CHARGE_STATUSES:
        return False
    models.CHARGE_STATES.advance(charge, models.ChargeStatus.cancelled)
    charge.payment_url = None
    gateway.get_gateway(get_settings()).cancel_payment(charge.order_id)
    db.add(charge)
    logger.info("Charge canceled", extra={"charge_id": charge.id})
    return True


def cancel_open_charge(
    db: Session,
    reference_type: models.ChargeReference,
    reference_id: int,
) -> bool:
    charge = find_open_charge(db, reference_type, reference_id)
    if charge is None:
        return False
    return cancel_charge(db, charge)
