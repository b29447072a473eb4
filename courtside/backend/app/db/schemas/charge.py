from datetime import date
from decimal import Decimal
from pydantic import BaseModel

from ..models import ChargeReference, ChargeStatus


class Charge(BaseModel):
    id: int
    user_id: int
    reference_type: ChargeReference
    reference_id: int
    amount: Decimal
    currency: str
    description: str
    due_date: date
    status: ChargeStatus
    payment_url: str | None = None

    class Config:
        from_attributes = True
