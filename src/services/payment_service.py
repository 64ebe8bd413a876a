"""
Payment service for medical record billing through PayOS.

A medical record can have several payment attempts. Only the latest attempt
matters for new checkouts: a Paid attempt ends the record's billing, a Pending
attempt with a link the payer can still use is handed back as-is, and anything
else starts a new attempt with a fresh order code.
"""

import logging
import random
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence
from urllib.parse import quote

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from core import config
from core.constants import (
    ORDER_CODE_MAX_ATTEMPTS,
    ORDER_CODE_RANDOM_DIGITS,
    PAYMENT_CANCELLED,
    PAYMENT_DESCRIPTION_MAX_LENGTH,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    PAYMENT_STATUS_NONE,
    PAYOS_CODE_FAILED,
    PAYOS_CODE_PAID,
    PAYOS_CODE_PENDING,
)
from models import MedicalRecord, MedicalService, Payment
from services.payos_service import PaymentGatewayError, PaymentItem, PayOSService
from utils.datetime_utils import clinic_now, clinic_today, day_bounds

logger = logging.getLogger(__name__)

PAYMENT_METHOD_PAYOS = "PayOS"

# Gateway webhook code -> payment status
WEBHOOK_STATUS_BY_CODE = {
    PAYOS_CODE_PAID: PAYMENT_PAID,
    PAYOS_CODE_PENDING: PAYMENT_PENDING,
    PAYOS_CODE_FAILED: PAYMENT_CANCELLED,
}


class PaymentLinkResult(BaseModel):
    payment_id: int
    checkout_url: str


class PaymentStatusResult(BaseModel):
    record_id: int
    status: str
    checkout_url: Optional[str] = None


class RecordServiceItem(BaseModel):
    """A billed service line of a medical record."""
    name: str
    quantity: int
    unit_price: float
    total: float


class PaymentChartPoint(BaseModel):
    payment_id: int
    payment_date: datetime
    amount: float


def truncate_description(description: Optional[str]) -> str:
    """PayOS limits descriptions to 25 characters."""
    return (description or "").strip()[:PAYMENT_DESCRIPTION_MAX_LENGTH]


def build_order_code(today: date, suffix: int) -> int:
    """Order code: YYMMDD followed by a zero-padded random suffix."""
    return int(f"{today.strftime('%y%m%d')}{suffix:0{ORDER_CODE_RANDOM_DIGITS}d}")


class PaymentService:
    """Service class for payments and their reconciliation with PayOS."""

    @staticmethod
    def _latest_payment(db: Session, record_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(
            Payment.record_id == record_id
        ).order_by(Payment.id.desc()).first()

    @staticmethod
    def _paid_payment(db: Session, record_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(
            Payment.record_id == record_id,
            Payment.status == PAYMENT_PAID,
        ).order_by(Payment.id.desc()).first()

    @staticmethod
    def generate_order_code(db: Session) -> int:
        """
        Generate an order code not used by any existing payment.

        Raises:
            HTTPException: 500 if no free code was found within the attempt limit
        """
        today = clinic_today()
        upper = 10 ** ORDER_CODE_RANDOM_DIGITS - 1
        for _ in range(ORDER_CODE_MAX_ATTEMPTS):
            order_code = build_order_code(today, random.randint(0, upper))
            taken = db.query(Payment.id).filter(Payment.order_code == order_code).first()
            if not taken:
                return order_code
            logger.debug(f"Order code {order_code} already used, regenerating")

        logger.error(f"Could not generate a unique order code after {ORDER_CODE_MAX_ATTEMPTS} attempts")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate a unique order code"
        )

    @staticmethod
    def create_payment(
        db: Session,
        medical_record_id: int,
        amount: int,
        description: str,
        items: Sequence[PaymentItem],
        gateway: Optional[PayOSService] = None,
    ) -> PaymentLinkResult:
        """
        Start (or resume) a checkout for a medical record.

        Args:
            db: Database session
            medical_record_id: Record being paid for
            amount: Amount in VND
            description: Payment description (trimmed and cut to 25 characters)
            items: Line items for the checkout page
            gateway: PayOS client, a default one is built from configuration if omitted

        Returns:
            PaymentLinkResult with the payment id and checkout URL

        Raises:
            HTTPException: 404 if the record does not exist, 409 if it is already
                paid, 502 if PayOS fails
        """
        gateway = gateway or PayOSService()

        record = db.query(MedicalRecord).filter(MedicalRecord.id == medical_record_id).first()
        if not record:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Medical record {medical_record_id} not found"
            )

        # Any Paid attempt closes the record, not only the latest one
        if PaymentService._paid_payment(db, medical_record_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This medical record has already been paid"
            )

        latest = PaymentService._latest_payment(db, medical_record_id)
        if latest is not None:
            if (
                latest.status == PAYMENT_PENDING
                and latest.checkout_url
                and gateway.is_payment_link_active(latest.order_code)
            ):
                logger.info(f"Reusing active payment link of payment {latest.id} for record {medical_record_id}")
                return PaymentLinkResult(payment_id=latest.id, checkout_url=latest.checkout_url)

        order_code = PaymentService.generate_order_code(db)
        payment = Payment(
            record_id=medical_record_id,
            amount=Decimal(amount),
            status=PAYMENT_PENDING,
            order_code=order_code,
            payment_date=clinic_now(),
            method=PAYMENT_METHOD_PAYOS,
        )
        try:
            db.add(payment)
            db.flush()

            link = gateway.create_payment_link(
                order_code=order_code,
                amount=int(amount),
                description=truncate_description(description),
                items=list(items),
            )
            payment.checkout_url = link.checkout_url
            db.commit()
        except PaymentGatewayError as e:
            db.rollback()
            logger.error(f"Payment link creation failed for record {medical_record_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Payment gateway could not create a checkout link"
            )
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Order code {order_code} collided on insert: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Payment could not be created, please retry"
            )

        db.refresh(payment)
        logger.info(f"Created payment {payment.id} (order {order_code}) for record {medical_record_id}")
        return PaymentLinkResult(payment_id=payment.id, checkout_url=payment.checkout_url)

    @staticmethod
    def update_payment_status(db: Session, order_code: int, new_status: str) -> Optional[Payment]:
        """
        Apply a status reported by the gateway.

        Unknown order codes are ignored. A Paid payment is final and never changes,
        and a record never gets a second Paid payment.

        Returns:
            The payment, or None if the order code is unknown
        """
        payment = db.query(Payment).filter(Payment.order_code == order_code).first()
        if not payment:
            logger.warning(f"Ignoring status '{new_status}' for unknown order code {order_code}")
            return None

        if payment.status == PAYMENT_PAID:
            logger.info(f"Payment {payment.id} already paid, ignoring status '{new_status}'")
            return payment

        if new_status == PAYMENT_PAID:
            paid = PaymentService._paid_payment(db, payment.record_id)
            if paid is not None:
                logger.warning(
                    f"Ignoring Paid for payment {payment.id} (order {order_code}): "
                    f"record {payment.record_id} is already paid by payment {paid.id}"
                )
                return payment

        payment.status = new_status
        payment.payment_date = clinic_now()
        db.commit()
        logger.info(f"Payment {payment.id} (order {order_code}) is now {new_status}")
        return payment

    @staticmethod
    def handle_webhook(
        db: Session,
        data: Mapping[str, Any],
        signature: str,
        gateway: Optional[PayOSService] = None,
    ) -> Optional[Payment]:
        """
        Process a PayOS webhook.

        Raises:
            HTTPException: 400 if the signature does not match the data
        """
        gateway = gateway or PayOSService()
        if not gateway.verify_webhook_signature(data, signature):
            logger.warning("Rejected payment webhook with invalid signature")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid signature"
            )

        code = str(data.get("code", ""))
        new_status = WEBHOOK_STATUS_BY_CODE.get(code)
        if new_status is None:
            logger.warning(f"Ignoring payment webhook with unknown code '{code}'")
            return None

        try:
            order_code = int(data.get("orderCode"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.warning(f"Ignoring payment webhook without a valid order code: {data.get('orderCode')!r}")
            return None

        return PaymentService.update_payment_status(db, order_code, new_status)

    @staticmethod
    def get_payment_status(db: Session, record_id: int) -> PaymentStatusResult:
        """Status of a record's billing: the Paid payment if any, else the latest attempt."""
        paid = PaymentService._paid_payment(db, record_id)
        if paid:
            return PaymentStatusResult(record_id=record_id, status=PAYMENT_PAID, checkout_url=paid.checkout_url)

        latest = PaymentService._latest_payment(db, record_id)
        if latest:
            return PaymentStatusResult(record_id=record_id, status=latest.status, checkout_url=latest.checkout_url)

        return PaymentStatusResult(record_id=record_id, status=PAYMENT_STATUS_NONE, checkout_url=None)

    @staticmethod
    def get_services_for_record(db: Session, record_id: int) -> List[RecordServiceItem]:
        lines = db.query(MedicalService).options(
            joinedload(MedicalService.service)
        ).filter(
            MedicalService.record_id == record_id
        ).order_by(MedicalService.id).all()

        return [
            RecordServiceItem(
                name=line.service.name,
                quantity=line.quantity,
                unit_price=float(line.unit_price),
                total=float(line.line_total),
            )
            for line in lines
        ]

    @staticmethod
    def get_payments_for_chart(db: Session, start_date: date, end_date: date) -> List[PaymentChartPoint]:
        """Paid payments with a payment date within [start_date, end_date], oldest first."""
        if start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Start date must be on or before end date"
            )
        range_start, _ = day_bounds(start_date)
        _, range_end = day_bounds(end_date)

        payments = db.query(Payment).filter(
            Payment.status == PAYMENT_PAID,
            Payment.payment_date.isnot(None),
            Payment.payment_date >= range_start,
            Payment.payment_date <= range_end,
        ).order_by(Payment.payment_date, Payment.id).all()

        return [
            PaymentChartPoint(payment_id=p.id, payment_date=p.payment_date, amount=float(p.amount))
            for p in payments
        ]

    @staticmethod
    def generate_qr_link(amount: int, add_info: str) -> str:
        """
        Build a VietQR image URL for a bank transfer to the clinic account.

        Raises:
            HTTPException: 500 if the bank account is not configured
        """
        if not config.BANK_ID or not config.BANK_ACCOUNT_NO:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Bank account for QR payments is not configured"
            )
        return (
            f"https://img.vietqr.io/image/{config.BANK_ID}-{config.BANK_ACCOUNT_NO}-{config.BANK_QR_TEMPLATE}.png"
            f"?amount={amount}&addInfo={quote(add_info or '')}&accountName={quote(config.BANK_ACCOUNT_NAME)}"
        )
