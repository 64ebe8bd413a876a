"""Per-user delivery row of a notification."""

from datetime import datetime
from typing import Optional
from sqlalchemy import ForeignKey, Index, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class NotificationReceiver(Base):
    """Delivery of one notification to one user, with read tracking."""

    __tablename__ = "notification_receivers"

    notification_id: Mapped[int] = mapped_column(ForeignKey("notifications.id"), primary_key=True)
    receiver_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    is_read: Mapped[bool] = mapped_column(default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=False), nullable=True)

    notification = relationship("Notification", back_populates="receivers")
    receiver = relationship("User", back_populates="notification_receipts")

    __table_args__ = (
        Index('idx_notification_receivers_receiver_read', 'receiver_id', 'is_read'),
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationReceiver(notification_id={self.notification_id}, "
            f"receiver_id={self.receiver_id}, is_read={self.is_read})>"
        )
