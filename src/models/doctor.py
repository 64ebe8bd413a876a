"""
Doctor profile model.

A doctor is a User with a specialty and an optional room. Work schedules
(DoctorShift) reference the doctor profile, while notifications are addressed
to the underlying user account.
"""

from typing import Optional
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Doctor(Base):
    """Doctor profile attached to a user account."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the doctor."""

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    """User account of the doctor (notifications go to this user)."""

    specialty: Mapped[str] = mapped_column(String(255), default="")
    """Medical specialty shown in schedule listings."""

    experience_years: Mapped[int] = mapped_column(default=0)

    room_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rooms.id"), nullable=True)
    """Room the doctor usually works in."""

    # Relationships
    user = relationship("User", back_populates="doctor")
    room = relationship("Room", back_populates="doctors")
    shifts = relationship("DoctorShift", back_populates="doctor")

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialty='{self.specialty}')>"
