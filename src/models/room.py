"""Room model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Room(Base):
    """Examination room a doctor works in."""

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100))

    doctors = relationship("Doctor", back_populates="room")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name='{self.name}')>"
