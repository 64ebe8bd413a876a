"""
PayOS payment gateway client.

Wraps the PayOS merchant API: creating checkout links, reading the status of
an existing link, and verifying webhook signatures. Every request is signed
with HMAC-SHA256 using the merchant checksum key.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import BaseModel

from core import config
from core.constants import PAYMENT_GATEWAY_TIMEOUT_SECONDS, PAYMENT_LINK_ACTIVE_STATUSES

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Raised when PayOS rejects a request or cannot be reached."""
    pass


class PaymentItem(BaseModel):
    """Line item shown on the PayOS checkout page."""
    name: str
    quantity: int
    price: int


class CheckoutLink(BaseModel):
    checkout_url: str
    payment_link_id: Optional[str] = None
    status: Optional[str] = None


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def sign_payment_request(
    checksum_key: str,
    amount: int,
    cancel_url: str,
    description: str,
    order_code: int,
    return_url: str,
) -> str:
    """Signature PayOS expects on a create-payment-link request."""
    data = (
        f"amount={amount}&cancelUrl={cancel_url}&description={description}"
        f"&orderCode={order_code}&returnUrl={return_url}"
    )
    return hmac.new(checksum_key.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_webhook_data(checksum_key: str, data: Mapping[str, Any]) -> str:
    """Signature of webhook data: HMAC-SHA256 over the key-sorted key=value&... rendering."""
    payload = "&".join(f"{key}={_stringify(data[key])}" for key in sorted(data))
    return hmac.new(checksum_key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


class PayOSService:
    """Client for the PayOS merchant API."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        api_key: Optional[str] = None,
        checksum_key: Optional[str] = None,
        partner_code: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self.client_id = client_id if client_id is not None else config.PAYOS_CLIENT_ID
        self.api_key = api_key if api_key is not None else config.PAYOS_API_KEY
        self.checksum_key = checksum_key if checksum_key is not None else config.PAYOS_CHECKSUM_KEY
        self.partner_code = partner_code if partner_code is not None else config.PAYOS_PARTNER_CODE
        self.base_url = (base_url or config.PAYOS_API_URL).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "x-client-id": self.client_id,
            "x-api-key": self.api_key,
        }
        if self.partner_code:
            headers["x-partner-code"] = self.partner_code
        return headers

    def create_payment_link(
        self,
        order_code: int,
        amount: int,
        description: str,
        items: List[PaymentItem],
        cancel_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> CheckoutLink:
        """
        Create a checkout link for an order.

        Args:
            order_code: Merchant order code, unique per payment
            amount: Amount in VND
            description: Short description shown to the payer
            items: Line items shown on the checkout page
            cancel_url: Where PayOS sends the payer on cancel
            return_url: Where PayOS sends the payer on success

        Returns:
            CheckoutLink with the checkout URL

        Raises:
            PaymentGatewayError: If PayOS is unreachable or rejects the request
        """
        cancel_url = cancel_url or config.PAYOS_CANCEL_URL
        return_url = return_url or config.PAYOS_RETURN_URL
        body = {
            "orderCode": order_code,
            "amount": amount,
            "description": description,
            "items": [item.model_dump() for item in items],
            "cancelUrl": cancel_url,
            "returnUrl": return_url,
            "signature": sign_payment_request(
                self.checksum_key, amount, cancel_url, description, order_code, return_url
            ),
        }

        try:
            response = httpx.post(
                f"{self.base_url}/v2/payment-requests",
                headers=self._headers(),
                json=body,
                timeout=PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise PaymentGatewayError(
                f"PayOS rejected payment link for order {order_code}: "
                f"{e.response.status_code} - {e.response.text}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentGatewayError(f"PayOS request failed for order {order_code}: {e}") from e

        data = payload.get("data") or {}
        if payload.get("code") != "00" or not data.get("checkoutUrl"):
            raise PaymentGatewayError(
                f"PayOS refused payment link for order {order_code}: "
                f"{payload.get('code')} {payload.get('desc')}"
            )

        logger.info(f"Created PayOS payment link for order {order_code}")
        return CheckoutLink(
            checkout_url=data["checkoutUrl"],
            payment_link_id=data.get("paymentLinkId"),
            status=data.get("status"),
        )

    def get_payment_link_status(self, order_code: int) -> Optional[str]:
        """
        Read the status of an existing payment link (e.g. PENDING, PAID, CANCELLED).

        Raises:
            PaymentGatewayError: If PayOS is unreachable or rejects the request
        """
        try:
            response = httpx.get(
                f"{self.base_url}/v2/payment-requests/{order_code}",
                headers=self._headers(),
                timeout=PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentGatewayError(f"PayOS status lookup failed for order {order_code}: {e}") from e

        if payload.get("code") != "00":
            raise PaymentGatewayError(
                f"PayOS status lookup refused for order {order_code}: {payload.get('code')} {payload.get('desc')}"
            )
        return (payload.get("data") or {}).get("status")

    def is_payment_link_active(self, order_code: int) -> bool:
        """
        Whether the payer can still complete the existing link.

        Any gateway error counts as inactive, so the caller creates a new link.
        """
        try:
            link_status = self.get_payment_link_status(order_code)
        except PaymentGatewayError as e:
            logger.warning(f"Treating payment link for order {order_code} as inactive: {e}")
            return False
        return (link_status or "").upper() in PAYMENT_LINK_ACTIVE_STATUSES

    def verify_webhook_signature(self, data: Mapping[str, Any], signature: str) -> bool:
        """Check a webhook's signature against its data."""
        if not signature:
            return False
        expected = sign_webhook_data(self.checksum_key, data)
        return hmac.compare_digest(expected, signature)
