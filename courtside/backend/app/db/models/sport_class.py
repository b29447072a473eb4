from decimal import Decimal
from sqlalchemy import Boolean, CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class SportClass(Base):
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity_max > 0", name="ck_class_capacity_positive"),
        CheckConstraint("duration_min > 0", name="ck_class_duration_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    sport: Mapped[str | None] = mapped_column(String(64))
    description: Mapped[str | None] = mapped_column(Text)
    duration_min: Mapped[int] = mapped_column(Integer, default=60)
    capacity_max: Mapped[int] = mapped_column(Integer, nullable=False)
    # null or zero means the class is included in the member's plan
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    schedules = relationship(
        "ClassSchedule", back_populates="sport_class", order_by="ClassSchedule.id"
    )
    occurrences = relationship("ClassOccurrence", back_populates="sport_class")
