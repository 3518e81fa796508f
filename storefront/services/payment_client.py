# storefront/services/payment_client.py
import hashlib
import hmac
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

import requests
from requests import RequestException

from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    RAZORPAY_API_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    PAYMENT_CURRENCY,
    STORE_NAME,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# rupees -> paise
SMALLEST_UNIT_FACTOR = 100


class PaymentGatewayError(RuntimeError):
    pass


def to_smallest_unit(amount: Decimal) -> int:
    return int((Decimal(amount) * SMALLEST_UNIT_FACTOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentClient:
    """
    Razorpay orders API plus the pieces the hosted checkout widget needs.

    The widget itself runs in the browser; the server creates the gateway
    order, hands the widget its options and verifies the signed callback.
    """

    def __init__(
        self,
        base_url: str | None = None,
        key_id: str | None = None,
        key_secret: str | None = None,
        currency: str = PAYMENT_CURRENCY,
        timeout: int = 5,
    ):
        self.base_url = (base_url or RAZORPAY_API_URL).rstrip("/")
        self.key_id = key_id if key_id is not None else RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else RAZORPAY_KEY_SECRET
        self.currency = currency
        self.timeout = timeout

    def _require_keys(self):
        if not self.key_id or not self.key_secret:
            raise PaymentGatewayError("Razorpay keys not configured")

    @http_retry()
    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"PaymentClient POST {url}")
        return requests.post(url, json=payload, auth=(self.key_id, self.key_secret), timeout=self.timeout)

    def create_order(self, amount: int, receipt: str, notes: Dict[str, str] | None = None) -> Dict[str, Any]:
        """
        amount is already in the smallest currency unit
        """
        self._require_keys()
        if amount <= 0:
            raise PaymentGatewayError("Amount must be positive")

        try:
            resp = self._post(
                "/orders",
                {"amount": amount, "currency": self.currency, "receipt": receipt, "notes": notes or {}},
            )
            resp.raise_for_status()
            data = resp.json()
        except (RequestException, ValueError) as e:
            logger.error(f"Payment gateway call failed: {e}")
            raise PaymentGatewayError("Failed to create payment order") from e

        if not isinstance(data, dict) or not data.get("id"):
            raise PaymentGatewayError("Payment gateway returned no order id")
        return data

    def verify_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        self._require_keys()
        expected = hmac.new(
            self.key_secret.encode(),
            f"{gateway_order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    def checkout_options(
        self,
        amount: int,
        gateway_order_id: str,
        description: str,
        prefill: Dict[str, str],
        notes: Dict[str, str],
    ) -> Dict[str, Any]:
        return {
            "key": self.key_id,
            "amount": amount,
            "currency": self.currency,
            "name": STORE_NAME,
            "description": description,
            "order_id": gateway_order_id,
            "prefill": prefill,
            "notes": notes,
        }
