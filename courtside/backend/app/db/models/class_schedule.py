from datetime import time
from sqlalchemy import CheckConstraint, ForeignKey, Integer, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class ClassSchedule(Base):
    """One recurring weekly slot of a group class, e.g. Tuesday 19:00."""

    __tablename__ = "class_schedules"
    __table_args__ = (
        CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_class_schedule_weekday_iso"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[time] = mapped_column(Time, nullable=False)
    instructor_id: Mapped[int] = mapped_column(ForeignKey("instructors.id"))
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"))

    sport_class = relationship("SportClass", back_populates="schedules")
    instructor = relationship("Instructor")
    court = relationship("Court")
