"""Medical record model: the outcome of an appointment, and the unit of billing."""

from datetime import datetime
from typing import Optional
from sqlalchemy import ForeignKey, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class MedicalRecord(Base):
    """Medical record written by the doctor after an appointment."""

    __tablename__ = "medical_records"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"), unique=True)
    doctor_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))

    # Relationships
    appointment = relationship("Appointment", back_populates="medical_record")
    services = relationship("MedicalService", back_populates="record")
    payments = relationship("Payment", back_populates="record")

    def __repr__(self) -> str:
        return f"<MedicalRecord(id={self.id}, appointment_id={self.appointment_id})>"
