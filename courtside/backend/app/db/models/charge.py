from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    CHAR,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ...core.state_machine import StateMachine
from ..session import Base


class ChargeStatus(str, PyEnum):
    pending = "pending"
    partially_paid = "partially_paid"
    paid = "paid"
    cancelled = "cancelled"
    refunded = "refunded"


class ChargeReference(str, PyEnum):
    court_booking = "court_booking"
    personal_session = "personal_session"
    class_enrollment = "class_enrollment"


CHARGE_STATES = StateMachine(
    "charge",
    {
        ChargeStatus.pending: frozenset(
            {ChargeStatus.partially_paid, ChargeStatus.paid, ChargeStatus.cancelled}
        ),
        ChargeStatus.partially_paid: frozenset({ChargeStatus.paid, ChargeStatus.cancelled}),
        ChargeStatus.paid: frozenset({ChargeStatus.refunded}),
        ChargeStatus.cancelled: frozenset(),
        ChargeStatus.refunded: frozenset(),
    },
)

OPEN_CHARGE_STATUSES = (ChargeStatus.pending, ChargeStatus.partially_paid)


class Charge(Base):
    __tablename__ = "charges"
    __table_args__ = (
        UniqueConstraint("order_id", name="uq_charge_order_id"),
        Index("ix_charge_reference", "reference_type", "reference_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    reference_type: Mapped[ChargeReference] = mapped_column(Enum(ChargeReference))
    reference_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(CHAR(3), default="BRL")
    description: Mapped[str] = mapped_column(String(255))
    due_date: Mapped[date] = mapped_column(Date)
    status: Mapped[ChargeStatus] = mapped_column(Enum(ChargeStatus), default=ChargeStatus.pending)
    order_id: Mapped[str] = mapped_column(String(64), index=True)
    payment_url: Mapped[str | None] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User")
