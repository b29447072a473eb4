from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ...core.state_machine import StateMachine
from ..session import Base


class BookingKind(str, PyEnum):
    court = "court"
    personal = "personal"


class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


BOOKING_STATES = StateMachine(
    "booking",
    {
        BookingStatus.pending: frozenset({BookingStatus.confirmed, BookingStatus.cancelled}),
        BookingStatus.confirmed: frozenset({BookingStatus.cancelled}),
        BookingStatus.cancelled: frozenset(),
    },
)

ACTIVE_BOOKING_STATUSES = (BookingStatus.pending, BookingStatus.confirmed)


class Booking(Base):
    """Court reservation or personal-training session."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_booking_interval_order"),
        CheckConstraint(
            "(kind = 'court' AND court_id IS NOT NULL)"
            " OR (kind = 'personal' AND instructor_id IS NOT NULL)",
            name="ck_booking_kind_resource",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[BookingKind] = mapped_column(Enum(BookingKind), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    court_id: Mapped[int | None] = mapped_column(ForeignKey("courts.id"), index=True)
    instructor_id: Mapped[int | None] = mapped_column(ForeignKey("instructors.id"), index=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    ends_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.pending)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime)
    canceled_by: Mapped[str | None] = mapped_column(String(64))

    user = relationship("User")
    court = relationship("Court")
    instructor = relationship("Instructor")
