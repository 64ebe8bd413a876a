"""MedicalService model: a service line billed on a medical record."""

from decimal import Decimal
from typing import Optional
from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class MedicalService(Base):
    """Quantity of one service provided under a medical record."""

    __tablename__ = "medical_services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    record_id: Mapped[int] = mapped_column(ForeignKey("medical_records.id"), index=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"))
    quantity: Mapped[int] = mapped_column(default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2))

    total_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    """Stored line total. When NULL, quantity * unit_price is used."""

    record = relationship("MedicalRecord", back_populates="services")
    service = relationship("Service")

    @property
    def line_total(self) -> Decimal:
        if self.total_price is not None:
            return self.total_price
        return self.unit_price * self.quantity

    def __repr__(self) -> str:
        return f"<MedicalService(id={self.id}, record_id={self.record_id}, service_id={self.service_id})>"
