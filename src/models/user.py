"""
User model for everyone with an account at the clinic.

Doctors and patients have a profile row (Doctor, Patient) pointing at their
User. The role decides who receives role-addressed notifications.
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class User(Base):
    """User account (doctor, patient, receptionist, manager)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(nullable=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id"), index=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))

    # Relationships
    role = relationship("Role", back_populates="users")
    doctor = relationship("Doctor", back_populates="user", uselist=False)
    patient = relationship("Patient", back_populates="user", uselist=False)
    notification_receipts = relationship("NotificationReceiver", back_populates="receiver")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, full_name='{self.full_name}')>"
