"""
Unit tests for the PayOS client.

HTTP calls are mocked; only request building, signing and response handling
are exercised.
"""

import hashlib
import hmac
import pytest
from unittest.mock import MagicMock, patch

import httpx

from services.payos_service import (
    PaymentGatewayError,
    PaymentItem,
    PayOSService,
    sign_payment_request,
    sign_webhook_data,
)

CHECKSUM_KEY = "test-checksum-key"


def _response(payload, status_code=200):
    request = httpx.Request("POST", "https://payos.test/v2/payment-requests")
    return httpx.Response(status_code, json=payload, request=request)


@pytest.fixture
def gateway():
    return PayOSService(
        client_id="client-id",
        api_key="api-key",
        checksum_key=CHECKSUM_KEY,
        base_url="https://payos.test/",
    )


class TestSignatures:

    def test_payment_request_signature(self):
        expected = hmac.new(
            CHECKSUM_KEY.encode(),
            b"amount=150000&cancelUrl=https://c&description=Visit 12&orderCode=240301123456&returnUrl=https://r",
            hashlib.sha256,
        ).hexdigest()

        assert sign_payment_request(CHECKSUM_KEY, 150000, "https://c", "Visit 12", 240301123456, "https://r") == expected

    def test_webhook_signature_sorts_keys_and_normalizes_values(self):
        data = {"orderCode": 123, "amount": 5000, "code": "00", "reference": None, "success": True}
        expected = hmac.new(
            CHECKSUM_KEY.encode(),
            b"amount=5000&code=00&orderCode=123&reference=&success=true",
            hashlib.sha256,
        ).hexdigest()

        assert sign_webhook_data(CHECKSUM_KEY, data) == expected

    def test_verify_webhook_signature(self, gateway):
        data = {"orderCode": 123, "code": "00"}
        signature = sign_webhook_data(CHECKSUM_KEY, data)

        assert gateway.verify_webhook_signature(data, signature) is True
        assert gateway.verify_webhook_signature({**data, "code": "09"}, signature) is False
        assert gateway.verify_webhook_signature(data, "") is False


class TestCreatePaymentLink:

    def test_posts_signed_request(self, gateway):
        payload = {"code": "00", "desc": "success", "data": {
            "checkoutUrl": "https://pay.payos.vn/web/abc", "paymentLinkId": "abc", "status": "PENDING",
        }}
        with patch("services.payos_service.httpx.post", return_value=_response(payload)) as mock_post:
            link = gateway.create_payment_link(
                order_code=240301000001,
                amount=150000,
                description="Record 12",
                items=[PaymentItem(name="Consultation", quantity=1, price=150000)],
                cancel_url="https://c",
                return_url="https://r",
            )

        assert link.checkout_url == "https://pay.payos.vn/web/abc"
        assert link.payment_link_id == "abc"

        url = mock_post.call_args.args[0]
        body = mock_post.call_args.kwargs["json"]
        headers = mock_post.call_args.kwargs["headers"]
        assert url == "https://payos.test/v2/payment-requests"
        assert headers["x-client-id"] == "client-id"
        assert headers["x-api-key"] == "api-key"
        assert body["items"] == [{"name": "Consultation", "quantity": 1, "price": 150000}]
        assert body["signature"] == sign_payment_request(
            CHECKSUM_KEY, 150000, "https://c", "Record 12", 240301000001, "https://r"
        )

    def test_refused_request_raises(self, gateway):
        payload = {"code": "231", "desc": "Order already exists", "data": None}
        with patch("services.payos_service.httpx.post", return_value=_response(payload)):
            with pytest.raises(PaymentGatewayError):
                gateway.create_payment_link(1, 1000, "x", [])

    def test_http_error_raises(self, gateway):
        with patch("services.payos_service.httpx.post", return_value=_response({"error": "boom"}, status_code=500)):
            with pytest.raises(PaymentGatewayError):
                gateway.create_payment_link(1, 1000, "x", [])

    def test_network_error_raises(self, gateway):
        with patch("services.payos_service.httpx.post", side_effect=httpx.ConnectError("unreachable")):
            with pytest.raises(PaymentGatewayError):
                gateway.create_payment_link(1, 1000, "x", [])


class TestPaymentLinkStatus:

    @pytest.mark.parametrize("link_status,active", [
        ("PENDING", True),
        ("INIT", True),
        ("PAID", False),
        ("CANCELLED", False),
        ("EXPIRED", False),
    ])
    def test_active_statuses(self, gateway, link_status, active):
        payload = {"code": "00", "data": {"status": link_status}}
        with patch("services.payos_service.httpx.get", return_value=_response(payload)):
            assert gateway.is_payment_link_active(123) is active

    def test_lookup_failure_counts_as_inactive(self, gateway):
        with patch("services.payos_service.httpx.get", side_effect=httpx.ReadTimeout("slow")):
            assert gateway.is_payment_link_active(123) is False

    def test_get_status(self, gateway):
        mock_response = MagicMock()
        mock_response.json.return_value = {"code": "00", "data": {"status": "PAID"}}
        with patch("services.payos_service.httpx.get", return_value=mock_response) as mock_get:
            assert gateway.get_payment_link_status(240301000001) == "PAID"

        assert mock_get.call_args.args[0] == "https://payos.test/v2/payment-requests/240301000001"
