"""
Payment model for medical record billing.

Each payment attempt for a record is its own row. The gateway correlates
callbacks through order_code, which is unique across all payments.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, ForeignKey, Numeric, BigInteger, Index, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import PAYMENT_PENDING
from core.database import Base


class Payment(Base):
    """
    Payment attempt for a medical record.

    At most one payment per record ends up Paid. A Paid payment is final:
    later callbacks and retries never change it.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the payment."""

    record_id: Mapped[int] = mapped_column(ForeignKey("medical_records.id"))
    """Medical record being paid for."""

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    """Amount charged (VND)."""

    status: Mapped[str] = mapped_column(String(20), default=PAYMENT_PENDING)  # 'Pending', 'Paid', 'Cancelled'
    """Current payment status."""

    order_code: Mapped[int] = mapped_column(BigInteger, unique=True)
    """Gateway order code (YYMMDD prefix + random digits)."""

    checkout_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    """Checkout link returned by the gateway."""

    payment_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=False), nullable=True)
    """When the payment was created or last changed status."""

    method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Payment method, e.g. 'PayOS'."""

    record = relationship("MedicalRecord", back_populates="payments")

    __table_args__ = (
        Index('idx_payments_record', 'record_id'),
        Index('idx_payments_status_date', 'status', 'payment_date'),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, record_id={self.record_id}, order_code={self.order_code}, status='{self.status}')>"
