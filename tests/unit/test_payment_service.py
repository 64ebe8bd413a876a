"""
Unit tests for PaymentService.

The PayOS client is replaced with a MagicMock; database behavior is real.
"""

import pytest
from datetime import date, datetime
from unittest.mock import MagicMock, patch

from fastapi import HTTPException

from core import config
from core.constants import PAYMENT_CANCELLED, PAYMENT_PAID, PAYMENT_PENDING, PAYMENT_STATUS_NONE
from models import Payment
from services.payment_service import (
    PaymentService,
    build_order_code,
    truncate_description,
)
from services.payos_service import CheckoutLink, PaymentGatewayError, PaymentItem, PayOSService
from tests.conftest import (
    add_service_to_record,
    create_appointment,
    create_doctor,
    create_medical_record,
    create_patient,
    create_payment,
)


@pytest.fixture
def record(db_session):
    doctor = create_doctor(db_session, "Dr. Hai")
    patient = create_patient(db_session, "Mai Pham", email="mai@example.com")
    appointment = create_appointment(db_session, patient, doctor, datetime(2024, 3, 1, 9, 0))
    return create_medical_record(db_session, appointment)


@pytest.fixture
def gateway():
    mock_gateway = MagicMock(spec=PayOSService)
    mock_gateway.create_payment_link.return_value = CheckoutLink(
        checkout_url="https://pay.payos.vn/web/new", payment_link_id="new", status="PENDING"
    )
    mock_gateway.is_payment_link_active.return_value = True
    return mock_gateway


ITEMS = [PaymentItem(name="Consultation", quantity=1, price=200000)]


class TestHelpers:

    def test_truncate_description(self):
        assert truncate_description("  Payment for medical record 12345  ") == "Payment for medical recor"
        assert truncate_description(None) == ""

    def test_build_order_code(self):
        assert build_order_code(date(2024, 3, 1), 42) == 240301000042

    def test_generate_order_code_avoids_taken_codes(self, db_session, record):
        taken = build_order_code(date(2024, 3, 1), 111111)
        create_payment(db_session, record, order_code=taken)

        with patch("services.payment_service.clinic_today", return_value=date(2024, 3, 1)), \
             patch("services.payment_service.random.randint", side_effect=[111111, 222222]):
            assert PaymentService.generate_order_code(db_session) == 240301222222

    def test_generate_order_code_gives_up(self, db_session, record):
        create_payment(db_session, record, order_code=240301111111)

        with patch("services.payment_service.clinic_today", return_value=date(2024, 3, 1)), \
             patch("services.payment_service.random.randint", return_value=111111):
            with pytest.raises(HTTPException) as exc_info:
                PaymentService.generate_order_code(db_session)

        assert exc_info.value.status_code == 500


class TestCreatePayment:

    def test_creates_pending_payment_with_link(self, db_session, record, gateway):
        result = PaymentService.create_payment(
            db_session, record.id, 200000, "Payment for medical record 12345", ITEMS, gateway=gateway
        )

        payment = db_session.query(Payment).filter(Payment.id == result.payment_id).one()
        assert result.checkout_url == "https://pay.payos.vn/web/new"
        assert payment.status == PAYMENT_PENDING
        assert payment.checkout_url == "https://pay.payos.vn/web/new"
        assert int(payment.amount) == 200000
        assert payment.method == "PayOS"

        kwargs = gateway.create_payment_link.call_args.kwargs
        assert kwargs["order_code"] == payment.order_code
        assert kwargs["description"] == "Payment for medical recor"
        assert kwargs["items"] == ITEMS

    def test_reuses_active_pending_link(self, db_session, record, gateway):
        existing = create_payment(db_session, record, order_code=240301000001)

        result = PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        assert result.payment_id == existing.id
        assert result.checkout_url == "https://pay.payos.vn/web/existing"
        gateway.is_payment_link_active.assert_called_once_with(240301000001)
        gateway.create_payment_link.assert_not_called()

    def test_inactive_link_starts_new_attempt(self, db_session, record, gateway):
        existing = create_payment(db_session, record, order_code=240301000001)
        gateway.is_payment_link_active.return_value = False

        result = PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        assert result.payment_id != existing.id
        assert db_session.query(Payment).filter(Payment.record_id == record.id).count() == 2

    def test_cancelled_payment_starts_new_attempt(self, db_session, record, gateway):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_CANCELLED)

        PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        gateway.is_payment_link_active.assert_not_called()
        gateway.create_payment_link.assert_called_once()

    def test_paid_record_is_rejected(self, db_session, record, gateway):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_PAID)

        with pytest.raises(HTTPException) as exc_info:
            PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        assert exc_info.value.status_code == 409
        gateway.create_payment_link.assert_not_called()

    def test_late_paid_older_attempt_closes_record(self, db_session, record, gateway):
        gateway.is_payment_link_active.return_value = False
        gateway.create_payment_link.side_effect = [
            CheckoutLink(checkout_url="https://pay.payos.vn/web/a", payment_link_id="a", status="PENDING"),
            CheckoutLink(checkout_url="https://pay.payos.vn/web/b", payment_link_id="b", status="PENDING"),
        ]
        first = PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)
        second = PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)
        first_order = db_session.query(Payment).filter(Payment.id == first.payment_id).one().order_code

        # The expired first link is paid after the second attempt was opened
        PaymentService.update_payment_status(db_session, first_order, PAYMENT_PAID)

        assert PaymentService.get_payment_status(db_session, record.id).status == PAYMENT_PAID
        with pytest.raises(HTTPException) as exc_info:
            PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        assert exc_info.value.status_code == 409
        assert gateway.create_payment_link.call_count == 2
        assert db_session.query(Payment).filter(Payment.record_id == record.id).count() == 2
        assert second.payment_id != first.payment_id

    def test_unknown_record(self, db_session, gateway):
        with pytest.raises(HTTPException) as exc_info:
            PaymentService.create_payment(db_session, 9999, 200000, "Visit", ITEMS, gateway=gateway)

        assert exc_info.value.status_code == 404

    def test_gateway_failure_leaves_no_payment(self, db_session, record, gateway):
        gateway.create_payment_link.side_effect = PaymentGatewayError("PayOS down")

        with pytest.raises(HTTPException) as exc_info:
            PaymentService.create_payment(db_session, record.id, 200000, "Visit", ITEMS, gateway=gateway)

        assert exc_info.value.status_code == 502
        assert db_session.query(Payment).count() == 0


class TestStatusUpdates:

    def test_update_payment_status(self, db_session, record):
        payment = create_payment(db_session, record, order_code=240301000001)

        updated = PaymentService.update_payment_status(db_session, 240301000001, PAYMENT_PAID)

        assert updated.id == payment.id
        assert updated.status == PAYMENT_PAID
        assert updated.payment_date is not None

    def test_paid_is_final(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_PAID)

        updated = PaymentService.update_payment_status(db_session, 240301000001, PAYMENT_CANCELLED)

        assert updated.status == PAYMENT_PAID

    def test_second_paid_payment_is_ignored(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_PAID)
        other = create_payment(db_session, record, order_code=240301000002)

        updated = PaymentService.update_payment_status(db_session, 240301000002, PAYMENT_PAID)

        assert updated.id == other.id
        assert updated.status == PAYMENT_PENDING
        assert db_session.query(Payment).filter(
            Payment.record_id == record.id, Payment.status == PAYMENT_PAID
        ).count() == 1

    def test_other_statuses_still_apply_after_paid(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_PAID)
        create_payment(db_session, record, order_code=240301000002)

        updated = PaymentService.update_payment_status(db_session, 240301000002, PAYMENT_CANCELLED)

        assert updated.status == PAYMENT_CANCELLED

    def test_unknown_order_code_is_ignored(self, db_session):
        assert PaymentService.update_payment_status(db_session, 1, PAYMENT_PAID) is None

    @pytest.mark.parametrize("code,expected", [
        ("00", PAYMENT_PAID),
        ("01", PAYMENT_PENDING),
        ("09", PAYMENT_CANCELLED),
    ])
    def test_webhook_maps_codes(self, db_session, record, code, expected):
        create_payment(db_session, record, order_code=240301000001)
        gateway = MagicMock(spec=PayOSService)
        gateway.verify_webhook_signature.return_value = True

        payment = PaymentService.handle_webhook(
            db_session, {"orderCode": 240301000001, "code": code}, "sig", gateway=gateway
        )

        assert payment.status == expected

    def test_webhook_with_bad_signature(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001)
        gateway = MagicMock(spec=PayOSService)
        gateway.verify_webhook_signature.return_value = False

        with pytest.raises(HTTPException) as exc_info:
            PaymentService.handle_webhook(db_session, {"orderCode": 240301000001, "code": "00"}, "bad", gateway=gateway)

        assert exc_info.value.status_code == 400
        assert db_session.query(Payment).one().status == PAYMENT_PENDING

    def test_webhook_ignores_unknown_code_and_order(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001)
        gateway = MagicMock(spec=PayOSService)
        gateway.verify_webhook_signature.return_value = True

        assert PaymentService.handle_webhook(
            db_session, {"orderCode": 240301000001, "code": "77"}, "sig", gateway=gateway
        ) is None
        assert PaymentService.handle_webhook(
            db_session, {"orderCode": "not-a-number", "code": "00"}, "sig", gateway=gateway
        ) is None
        assert PaymentService.handle_webhook(
            db_session, {"orderCode": 1, "code": "00"}, "sig", gateway=gateway
        ) is None
        assert db_session.query(Payment).one().status == PAYMENT_PENDING

    def test_webhook_signed_with_real_key(self, db_session, record):
        from services.payos_service import sign_webhook_data

        create_payment(db_session, record, order_code=240301000001)
        data = {"orderCode": 240301000001, "code": "00", "amount": 200000}
        gateway = PayOSService(client_id="c", api_key="a", checksum_key="secret")

        payment = PaymentService.handle_webhook(
            db_session, data, sign_webhook_data("secret", data), gateway=gateway
        )

        assert payment.status == PAYMENT_PAID


class TestQueries:

    def test_payment_status(self, db_session, record):
        assert PaymentService.get_payment_status(db_session, record.id).status == PAYMENT_STATUS_NONE

        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_PAID)
        create_payment(db_session, record, order_code=240301000002, status=PAYMENT_CANCELLED)

        assert PaymentService.get_payment_status(db_session, record.id).status == PAYMENT_PAID

    def test_latest_attempt_without_paid(self, db_session, record):
        create_payment(db_session, record, order_code=240301000001, status=PAYMENT_CANCELLED)
        create_payment(db_session, record, order_code=240301000002, checkout_url="https://pay.payos.vn/web/2")

        result = PaymentService.get_payment_status(db_session, record.id)

        assert result.status == PAYMENT_PENDING
        assert result.checkout_url == "https://pay.payos.vn/web/2"

    def test_services_for_record(self, db_session, record):
        add_service_to_record(db_session, record, "Consultation", 150000)
        add_service_to_record(db_session, record, "Blood test", 50000, quantity=2)
        add_service_to_record(db_session, record, "X-ray", 300000, total_price=250000)

        items = PaymentService.get_services_for_record(db_session, record.id)

        assert [(i.name, i.quantity, i.total) for i in items] == [
            ("Consultation", 1, 150000.0),
            ("Blood test", 2, 100000.0),
            ("X-ray", 1, 250000.0),
        ]

    def test_payments_for_chart(self, db_session, record):
        create_payment(
            db_session, record, order_code=240301000001, status=PAYMENT_PAID,
            amount=100000, payment_date=datetime(2024, 3, 1, 23, 30),
        )
        create_payment(
            db_session, record, order_code=240301000002, status=PAYMENT_PENDING,
            payment_date=datetime(2024, 3, 2, 9, 0),
        )
        create_payment(
            db_session, record, order_code=240301000003, status=PAYMENT_PAID,
            amount=50000, payment_date=datetime(2024, 3, 5, 8, 0),
        )

        points = PaymentService.get_payments_for_chart(db_session, date(2024, 3, 1), date(2024, 3, 2))

        assert [(p.amount, p.payment_date.date()) for p in points] == [(100000.0, date(2024, 3, 1))]

    def test_payments_for_chart_includes_last_second_of_day(self, db_session, record):
        create_payment(
            db_session, record, order_code=240301000001, status=PAYMENT_PAID,
            payment_date=datetime(2024, 3, 2, 23, 59, 59, 500000),
        )

        points = PaymentService.get_payments_for_chart(db_session, date(2024, 3, 1), date(2024, 3, 2))

        assert len(points) == 1

    def test_payments_for_chart_rejects_reversed_range(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            PaymentService.get_payments_for_chart(db_session, date(2024, 3, 2), date(2024, 3, 1))

        assert exc_info.value.status_code == 400


class TestQrLink:

    def test_builds_vietqr_url(self):
        with patch.object(config, "BANK_ID", "970422"), \
             patch.object(config, "BANK_ACCOUNT_NO", "0123456789"), \
             patch.object(config, "BANK_ACCOUNT_NAME", "PHONG KHAM CLINIC CARE"), \
             patch.object(config, "BANK_QR_TEMPLATE", "compact2"):
            url = PaymentService.generate_qr_link(150000, "Record 12")

        assert url == (
            "https://img.vietqr.io/image/970422-0123456789-compact2.png"
            "?amount=150000&addInfo=Record%2012&accountName=PHONG%20KHAM%20CLINIC%20CARE"
        )

    def test_requires_bank_configuration(self):
        with patch.object(config, "BANK_ID", ""):
            with pytest.raises(HTTPException) as exc_info:
                PaymentService.generate_qr_link(150000, "Record 12")

        assert exc_info.value.status_code == 500
