import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """The payment gateway could not be reached, refused the call, or is not configured."""


class RazorpayGateway:
    """Creates remote payment orders and checks payment signatures."""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = (api_url or settings.RAZORPAY_API_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def create_order(self, amount: int, currency: str, receipt: str) -> Dict[str, Any]:
        """Create a gateway order for `amount` in the currency's smallest unit."""
        if not self.configured:
            raise GatewayError("Razorpay credentials missing")

        body = {"amount": amount, "currency": currency, "receipt": receipt, "payment_capture": 1}
        async with httpx.AsyncClient(
            auth=(self.key_id, self.key_secret), timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                res = await client.post(f"{self.api_url}/orders", json=body)
                res.raise_for_status()
                order = res.json()
            except (httpx.HTTPError, ValueError) as e:
                raise GatewayError(f"Failed to create Razorpay order: {e}") from e

        if not order.get("id"):
            raise GatewayError("Razorpay returned an order without an id")
        return order

    def sign(self, order_id: str, payment_id: str) -> str:
        if not self.key_secret:
            raise GatewayError("Razorpay key secret missing")
        message = f"{order_id}|{payment_id}".encode()
        return hmac.new(self.key_secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = self.sign(order_id, payment_id)
        return hmac.compare_digest(expected.encode(), (signature or "").encode())


def get_gateway() -> RazorpayGateway:
    # FastAPI dependency, overridden in tests
    return RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
