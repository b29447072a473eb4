from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ...core.state_machine import StateMachine
from ..session import Base


class OccurrenceStatus(str, PyEnum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    cancelled = "cancelled"


OCCURRENCE_STATES = StateMachine(
    "class occurrence",
    {
        OccurrenceStatus.scheduled: frozenset(
            {OccurrenceStatus.confirmed, OccurrenceStatus.cancelled}
        ),
        OccurrenceStatus.confirmed: frozenset({OccurrenceStatus.cancelled}),
        OccurrenceStatus.cancelled: frozenset(),
    },
)


class ClassOccurrence(Base):
    __tablename__ = "class_occurrences"
    __table_args__ = (
        UniqueConstraint("class_id", "starts_at", name="uq_class_occurrence_class_time"),
        CheckConstraint("starts_at < ends_at", name="ck_class_occurrence_interval_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"))
    instructor_id: Mapped[int] = mapped_column(ForeignKey("instructors.id"), index=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), index=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    ends_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[OccurrenceStatus] = mapped_column(
        Enum(OccurrenceStatus), default=OccurrenceStatus.scheduled
    )

    sport_class = relationship("SportClass", back_populates="occurrences")
    instructor = relationship("Instructor")
    court = relationship("Court")
    enrollments = relationship("Enrollment", back_populates="occurrence")
