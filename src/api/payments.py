# pyright: reportMissingTypeStubs=false
"""
Payment API endpoints.

Checkout links are created through PayOS; PayOS reports the outcome to the
callback endpoint.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.database import get_db
from services import PaymentService
from services.payment_service import PaymentChartPoint, PaymentLinkResult, PaymentStatusResult
from services.payos_service import PaymentItem
from api.responses import PaymentCallbackResponse, PaymentRecordResponse, QrLinkResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class CreatePaymentRequest(BaseModel):
    """Request model for starting a checkout for a medical record."""
    medical_record_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0)
    description: str = ""
    items: List[PaymentItem] = Field(default_factory=list)


class PayOSWebhookRequest(BaseModel):
    """Webhook body sent by PayOS."""
    code: Optional[str] = None
    desc: Optional[str] = None
    success: Optional[bool] = None
    data: Dict[str, Any]
    signature: str


class GenerateQrRequest(BaseModel):
    amount: int = Field(..., gt=0)
    add_info: str = ""


@router.post("/create", summary="Create a payment link", response_model=PaymentLinkResult)
async def create_payment(
    request: CreatePaymentRequest,
    db: Session = Depends(get_db)
) -> PaymentLinkResult:
    """
    Start a checkout for a medical record.

    Returns the existing link while a pending link is still usable.
    """
    return PaymentService.create_payment(
        db,
        medical_record_id=request.medical_record_id,
        amount=request.amount,
        description=request.description,
        items=request.items,
    )


@router.post("/callback", summary="PayOS webhook", response_model=PaymentCallbackResponse)
async def payment_callback(
    request: PayOSWebhookRequest,
    db: Session = Depends(get_db)
) -> PaymentCallbackResponse:
    """
    Apply a payment result reported by PayOS.

    Callbacks for unknown order codes or with unknown codes are acknowledged
    without changing anything.
    """
    payment = PaymentService.handle_webhook(db, request.data, request.signature)
    if payment is None:
        return PaymentCallbackResponse(success=True, message="Ignored")
    return PaymentCallbackResponse(success=True, message=f"Payment status is {payment.status}")


@router.get("/status/{record_id}", summary="Payment status of a record", response_model=PaymentStatusResult)
async def get_payment_status(
    record_id: int,
    db: Session = Depends(get_db)
) -> PaymentStatusResult:
    if record_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="record_id must be greater than 0"
        )
    return PaymentService.get_payment_status(db, record_id)


@router.get("/record/{record_id}", summary="Billable services of a record", response_model=PaymentRecordResponse)
async def get_record_services(
    record_id: int,
    db: Session = Depends(get_db)
) -> PaymentRecordResponse:
    if record_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="record_id must be greater than 0"
        )
    items = PaymentService.get_services_for_record(db, record_id)
    if not items:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No services found for record {record_id}"
        )
    return PaymentRecordResponse(
        record_id=record_id,
        total_amount=sum(item.total for item in items),
        items=items,
    )


@router.get("/chart", summary="Paid payments for charts", response_model=List[PaymentChartPoint])
async def get_payments_chart(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db)
) -> List[PaymentChartPoint]:
    return PaymentService.get_payments_for_chart(db, start, end)


@router.post("/generate-qr", summary="Generate a bank transfer QR link", response_model=QrLinkResponse)
async def generate_qr(request: GenerateQrRequest) -> QrLinkResponse:
    return QrLinkResponse(qr_url=PaymentService.generate_qr_link(request.amount, request.add_info))
