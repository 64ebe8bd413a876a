"""
DoctorShift model: assignment of a doctor to a shift over a date range.

A row means "doctor D works shift S on every day from effective_from to
effective_to". A missing effective_to means the assignment is open-ended.
"""

from datetime import date
from typing import Optional
from sqlalchemy import String, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import DOCTOR_SHIFT_ACTIVE
from core.database import Base


class DoctorShift(Base):
    """
    Work schedule entry for one doctor and one shift.

    For a given doctor and shift, two assignments that are not Cancelled must
    never overlap. The service layer checks this before writing; the partial
    unique index below catches concurrent writers that start on the same day.
    """

    __tablename__ = "doctor_shifts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the assignment."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))
    """Doctor working the shift."""

    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id"))
    """Shift being worked."""

    effective_from: Mapped[date] = mapped_column()
    """First day (inclusive) the assignment applies."""

    effective_to: Mapped[Optional[date]] = mapped_column(nullable=True)
    """Last day (inclusive) the assignment applies. NULL means open-ended."""

    status: Mapped[str] = mapped_column(String(20), default=DOCTOR_SHIFT_ACTIVE)  # 'Active', 'Cancelled', 'Completed'
    """Current status. Cancelled rows are ignored by conflict checks and listings."""

    # Relationships
    doctor = relationship("Doctor", back_populates="shifts")
    shift = relationship("Shift", back_populates="doctor_shifts")

    __table_args__ = (
        Index('idx_doctor_shifts_doctor_shift', 'doctor_id', 'shift_id'),
        Index('idx_doctor_shifts_effective_range', 'effective_from', 'effective_to'),
        Index(
            'uq_doctor_shifts_active_start',
            'doctor_id', 'shift_id', 'effective_from',
            unique=True,
            postgresql_where=text("status <> 'Cancelled'"),
            sqlite_where=text("status <> 'Cancelled'"),
        ),
    )

    def covers(self, day: date) -> bool:
        """Whether the assignment applies on the given day."""
        return self.effective_from <= day and (self.effective_to is None or self.effective_to >= day)

    def __repr__(self) -> str:
        return (
            f"<DoctorShift(id={self.id}, doctor_id={self.doctor_id}, shift_id={self.shift_id}, "
            f"{self.effective_from}..{self.effective_to}, status='{self.status}')>"
        )
