"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
Result types produced by services are re-used directly as response models.
"""

from typing import List, Optional

from pydantic import BaseModel

from services.payment_service import RecordServiceItem


class ConflictCheckResponse(BaseModel):
    """Response model for doctor availability checks."""
    is_available: bool
    message: str


class ShiftLimitResponse(BaseModel):
    """Response model for daily shift limit checks."""
    doctor_id: int
    can_add_shift: bool


class SendNotificationResponse(BaseModel):
    notification_id: int


class UnreadCountResponse(BaseModel):
    user_id: int
    unread_count: int


class ReminderRunResponse(BaseModel):
    """Response model for a manually triggered reminder run."""
    sent_count: int
    message: str


class PaymentRecordResponse(BaseModel):
    """Billable services of a medical record with their total."""
    record_id: int
    total_amount: float
    items: List[RecordServiceItem]


class PaymentCallbackResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class QrLinkResponse(BaseModel):
    qr_url: str
