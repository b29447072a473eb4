from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ...core.state_machine import StateMachine
from ..session import Base


class EnrollmentStatus(str, PyEnum):
    enrolled = "enrolled"
    cancelled = "cancelled"


ENROLLMENT_STATES = StateMachine(
    "enrollment",
    {
        EnrollmentStatus.enrolled: frozenset({EnrollmentStatus.cancelled}),
        EnrollmentStatus.cancelled: frozenset({EnrollmentStatus.enrolled}),
    },
)


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("occurrence_id", "user_id", name="uq_enrollment_occurrence_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    occurrence_id: Mapped[int] = mapped_column(
        ForeignKey("class_occurrences.id", ondelete="CASCADE"), index=True
    )
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(EnrollmentStatus), default=EnrollmentStatus.enrolled
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User")
    occurrence = relationship("ClassOccurrence", back_populates="enrollments")
