"""
Notification model.

A notification is written once and delivered to many users through
NotificationReceiver rows, each tracking its own read state.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import NOTIFICATION_TYPE_GENERAL
from core.database import Base


class Notification(Base):
    """In-app notification sent to a set of users."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(50), default=NOTIFICATION_TYPE_GENERAL)

    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    """User who sent the notification. NULL for system notifications."""

    is_global: Mapped[bool] = mapped_column(default=False)
    """Descriptive flag only; receivers are always resolved at send time."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=False))

    receivers = relationship(
        "NotificationReceiver",
        back_populates="notification",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, title='{self.title}', type='{self.type}')>"
