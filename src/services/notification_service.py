"""
Notification service for in-app notifications and their email copies.

A notification is stored once and fanned out to receivers resolved at send
time, either an explicit list of user ids or a snapshot of every user holding
one of the given roles. Each receiver tracks its own read state.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from core.constants import (
    FALLBACK_NOTIFICATION_TEMPLATE,
    GENERIC_NOTIFICATION_TEMPLATE,
    NOTIFICATION_TYPE_GENERAL,
)
from models import Notification, NotificationReceiver, Role, User
from services.email_service import EmailService
from utils.datetime_utils import clinic_now
from utils.email_templates import load_template_or_default, render_template
from utils.pagination import PagedResult, paginate

logger = logging.getLogger(__name__)


class UserNotification(BaseModel):
    """A notification as seen by one receiver."""
    notification_id: int
    title: str
    content: str
    type: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationSummary(BaseModel):
    """A notification as listed for administrators."""
    notification_id: int
    title: str
    content: str
    type: str
    created_by: Optional[int] = None
    is_global: bool
    created_at: datetime
    receiver_count: int


class NotificationService:
    """Service class for notification fan-out and read tracking."""

    @staticmethod
    def resolve_receivers(
        db: Session,
        role_names: Optional[Sequence[str]] = None,
        receiver_ids: Optional[Sequence[int]] = None,
    ) -> List[int]:
        """
        Resolve the user ids a notification goes to.

        Explicit receiver ids win over role names. Role names are resolved to the
        users holding them right now; later role changes do not affect the result.

        Raises:
            HTTPException: 404 if an explicit receiver id does not exist
        """
        if receiver_ids:
            unique_ids = list(dict.fromkeys(receiver_ids))
            found = {
                user_id for (user_id,) in db.query(User.id).filter(User.id.in_(unique_ids)).all()
            }
            missing = [user_id for user_id in unique_ids if user_id not in found]
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Users not found: {missing}"
                )
            return unique_ids

        if role_names:
            rows = db.query(User.id).join(Role, User.role_id == Role.id).filter(
                Role.name.in_(list(role_names))
            ).order_by(User.id).all()
            return [user_id for (user_id,) in rows]

        return []

    @staticmethod
    def send_notification(
        db: Session,
        title: str,
        content: str,
        type: str = NOTIFICATION_TYPE_GENERAL,
        created_by: Optional[int] = None,
        is_global: bool = False,
        role_names: Optional[Sequence[str]] = None,
        receiver_ids: Optional[Sequence[int]] = None,
    ) -> int:
        """
        Create a notification, deliver it to its receivers and email them.

        Args:
            db: Database session
            title: Notification title
            content: Notification body
            type: Notification type (e.g. 'General', 'Schedule')
            created_by: Sending user, None for system notifications
            is_global: Stored flag describing the audience
            role_names: Roles whose current holders receive the notification
            receiver_ids: Explicit receivers (take precedence over role_names)

        Returns:
            ID of the created notification

        Raises:
            HTTPException: 404 if an explicit receiver does not exist
        """
        receivers = NotificationService.resolve_receivers(db, role_names, receiver_ids)

        notification = Notification(
            title=title,
            content=content,
            type=type,
            created_by=created_by,
            is_global=is_global,
        )
        db.add(notification)
        db.flush()

        for receiver_id in receivers:
            db.add(NotificationReceiver(
                notification_id=notification.id,
                receiver_id=receiver_id,
                is_read=False,
            ))

        db.commit()
        db.refresh(notification)

        logger.info(f"Sent notification {notification.id} '{title}' to {len(receivers)} receiver(s)")

        NotificationService._email_receivers(db, receivers, title, content)
        return notification.id

    @staticmethod
    def _email_receivers(db: Session, receiver_ids: List[int], title: str, content: str) -> None:
        """Email a copy of the notification to every receiver with an email address."""
        if not receiver_ids or not EmailService.is_enabled():
            return

        users = db.query(User).filter(
            User.id.in_(receiver_ids),
            User.email.isnot(None),
            User.email != "",
        ).all()
        if not users:
            return

        template = load_template_or_default(GENERIC_NOTIFICATION_TEMPLATE, FALLBACK_NOTIFICATION_TEMPLATE)
        sent = 0
        for user in users:
            body = render_template(template, {
                "UserName": user.full_name,
                "Title": title,
                "Content": content,
            })
            try:
                EmailService.send_email(user.email, title, body)
                sent += 1
            except Exception as e:
                logger.warning(f"Failed to email notification to user {user.id}: {e}")

        logger.info(f"Emailed notification '{title}' to {sent}/{len(users)} user(s)")

    @staticmethod
    def count_unread(db: Session, user_id: int) -> int:
        """Count unread notifications of a user."""
        return db.query(func.count()).select_from(NotificationReceiver).filter(
            NotificationReceiver.receiver_id == user_id,
            NotificationReceiver.is_read == False,  # noqa: E712
        ).scalar() or 0

    @staticmethod
    def mark_as_read(db: Session, user_id: int, notification_id: int) -> bool:
        """
        Mark one notification as read for a user.

        Returns:
            False if the user never received the notification, True otherwise.
            Marking an already-read notification leaves it unchanged.
        """
        receiver = db.query(NotificationReceiver).filter(
            NotificationReceiver.receiver_id == user_id,
            NotificationReceiver.notification_id == notification_id,
        ).first()
        if not receiver:
            return False

        if not receiver.is_read:
            receiver.is_read = True
            receiver.read_at = clinic_now()
            db.commit()
        return True

    @staticmethod
    def mark_all_as_read(db: Session, user_id: int) -> int:
        """Mark every unread notification of a user as read. Returns how many changed."""
        updated = db.query(NotificationReceiver).filter(
            NotificationReceiver.receiver_id == user_id,
            NotificationReceiver.is_read == False,  # noqa: E712
        ).update(
            {NotificationReceiver.is_read: True, NotificationReceiver.read_at: clinic_now()},
            synchronize_session=False,
        )
        db.commit()
        if updated:
            logger.info(f"Marked {updated} notification(s) as read for user {user_id}")
        return updated

    @staticmethod
    def get_notifications_by_user(
        db: Session, user_id: int, page_number: int, page_size: int
    ) -> PagedResult[UserNotification]:
        """List a user's notifications, unread first, then newest first."""
        query = db.query(NotificationReceiver, Notification).join(
            Notification, NotificationReceiver.notification_id == Notification.id
        ).filter(
            NotificationReceiver.receiver_id == user_id
        ).order_by(
            case((NotificationReceiver.is_read == False, 0), else_=1),  # noqa: E712
            Notification.created_at.desc(),
            Notification.id.desc(),
        )

        page = paginate(query, page_number, page_size)
        return page.map(lambda row: UserNotification(
            notification_id=row[1].id,
            title=row[1].title,
            content=row[1].content,
            type=row[1].type,
            is_read=row[0].is_read,
            read_at=row[0].read_at,
            created_at=row[1].created_at,
        ))

    @staticmethod
    def get_all_notifications(db: Session, page_number: int, page_size: int) -> PagedResult[NotificationSummary]:
        """List every notification, newest first, with its receiver count."""
        receiver_count = db.query(
            NotificationReceiver.notification_id,
            func.count().label("receiver_count"),
        ).group_by(NotificationReceiver.notification_id).subquery()

        query = db.query(
            Notification, func.coalesce(receiver_count.c.receiver_count, 0)
        ).outerjoin(
            receiver_count, receiver_count.c.notification_id == Notification.id
        ).order_by(Notification.id.desc())

        page = paginate(query, page_number, page_size)
        return page.map(lambda row: NotificationSummary(
            notification_id=row[0].id,
            title=row[0].title,
            content=row[0].content,
            type=row[0].type,
            created_by=row[0].created_by,
            is_global=row[0].is_global,
            created_at=row[0].created_at,
            receiver_count=int(row[1]),
        ))
