from datetime import time
from enum import Enum as PyEnum
from sqlalchemy import CheckConstraint, Enum, Integer, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from ..session import Base


class ResourceType(str, PyEnum):
    court = "court"
    instructor = "instructor"


class WeeklyAvailability(Base):
    """Recurring weekly open window of a court or instructor (one per weekday)."""

    __tablename__ = "weekly_availability"
    __table_args__ = (
        UniqueConstraint(
            "resource_type", "resource_id", "weekday", name="uq_availability_resource_weekday"
        ),
        CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_availability_weekday_iso"),
        CheckConstraint("starts_at < ends_at", name="ck_availability_window_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resource_type: Mapped[ResourceType] = mapped_column(Enum(ResourceType), nullable=False)
    resource_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[time] = mapped_column(Time, nullable=False)
    ends_at: Mapped[time] = mapped_column(Time, nullable=False)
