"""Shift model: a named time-of-day slot (Morning, Afternoon, ...)."""

from datetime import time
from sqlalchemy import String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Shift(Base):
    """Working shift with a fixed start and end time."""

    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    shift_type: Mapped[str] = mapped_column(String(50))
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    doctor_shifts = relationship("DoctorShift", back_populates="shift")

    def __repr__(self) -> str:
        return f"<Shift(id={self.id}, shift_type='{self.shift_type}', {self.start_time}-{self.end_time})>"
