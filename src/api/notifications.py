# pyright: reportMissingTypeStubs=false
"""
Notification API endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from core.constants import DEFAULT_PAGE_SIZE, NOTIFICATION_TYPE_GENERAL
from core.database import get_db
from services import NotificationService
from services.notification_service import NotificationSummary, UserNotification
from services.reminder_service import ReminderService
from utils.pagination import PagedResult
from api.responses import ReminderRunResponse, SendNotificationResponse, UnreadCountResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class SendNotificationRequest(BaseModel):
    """
    Request model for sending a notification.

    Receivers are the explicit receiver_ids when given, otherwise every user
    currently holding one of role_names.
    """
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    type: str = NOTIFICATION_TYPE_GENERAL
    created_by: Optional[int] = None
    is_global: bool = False
    role_names: List[str] = Field(default_factory=list)
    receiver_ids: List[int] = Field(default_factory=list)

    @field_validator('title', 'content')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


@router.post("/send", summary="Send a notification", response_model=SendNotificationResponse)
async def send_notification(
    request: SendNotificationRequest,
    db: Session = Depends(get_db)
) -> SendNotificationResponse:
    """Create a notification and deliver it to its receivers (in-app and by email)."""
    notification_id = NotificationService.send_notification(
        db,
        title=request.title,
        content=request.content,
        type=request.type,
        created_by=request.created_by,
        is_global=request.is_global,
        role_names=request.role_names,
        receiver_ids=request.receiver_ids,
    )
    return SendNotificationResponse(notification_id=notification_id)


@router.get("/user/{user_id}", summary="List a user's notifications", response_model=PagedResult[UserNotification])
async def get_user_notifications(
    user_id: int,
    page_number: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """Unread notifications first, then newest first."""
    return NotificationService.get_notifications_by_user(db, user_id, page_number, page_size)


@router.get("/unread-count/{user_id}", summary="Count unread notifications", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: int,
    db: Session = Depends(get_db)
) -> UnreadCountResponse:
    return UnreadCountResponse(user_id=user_id, unread_count=NotificationService.count_unread(db, user_id))


@router.put(
    "/read/{user_id}/{notification_id}",
    summary="Mark a notification as read",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def mark_as_read(
    user_id: int,
    notification_id: int,
    db: Session = Depends(get_db)
) -> Response:
    if not NotificationService.mark_as_read(db, user_id, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found for this user"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/read-all/{user_id}",
    summary="Mark all notifications as read",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def mark_all_as_read(
    user_id: int,
    db: Session = Depends(get_db)
) -> Response:
    NotificationService.mark_all_as_read(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", summary="List all notifications", response_model=PagedResult[NotificationSummary])
async def list_notifications(
    page_number: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """Every notification, newest first, for administrators."""
    return NotificationService.get_all_notifications(db, page_number, page_size)


@router.post("/send-reminder", summary="Send appointment reminders now", response_model=ReminderRunResponse)
async def send_reminder(db: Session = Depends(get_db)) -> ReminderRunResponse:
    """Run the daily appointment reminder job immediately."""
    sent = ReminderService.send_appointment_reminders(db)
    return ReminderRunResponse(sent_count=sent, message="Appointment reminders sent.")
