"""
Appointment model representing a booked visit between a patient and a doctor.

Booking itself is handled elsewhere; this backend reads appointments for the
dashboard and the daily reminder emails.
"""

from datetime import datetime
from sqlalchemy import String, ForeignKey, Index, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import APPOINTMENT_PENDING
from core.database import Base


class Appointment(Base):
    """Appointment entity."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    """Reference to the patient who booked the appointment."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))
    """Reference to the doctor seeing the patient."""

    appointment_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))
    """Date and time of the visit in clinic local time."""

    status: Mapped[str] = mapped_column(String(50), default=APPOINTMENT_PENDING)  # 'Pending', 'Confirmed', 'Completed', 'Cancelled'

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor")
    medical_record = relationship("MedicalRecord", back_populates="appointment", uselist=False)

    __table_args__ = (
        Index('idx_appointments_date_status', 'appointment_date', 'status'),
        Index('idx_appointments_patient', 'patient_id'),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, date={self.appointment_date}, status='{self.status}')>"
