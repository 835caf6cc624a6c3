# storefront/checkout.py
import logging
from typing import Any, Dict, List, Optional

from pricing import order_summary
from storefront.api import ApiError
from storefront.cart import CartStore
from storefront.models import CartItem
from storefront.sync import StoreError

logger = logging.getLogger(__name__)

GATEWAY_METHOD = "razorpay"


class Checkout:
    """Places orders from the cart, or from a single buy-now line."""

    def __init__(self, cart_store: CartStore):
        self.cart_store = cart_store
        self.session = cart_store.session

    def _items(self, buy_now: Optional[CartItem]) -> List[CartItem]:
        return [buy_now] if buy_now else list(self.cart_store.items)

    def preview(self, coupon_code: Optional[str] = None, buy_now: Optional[CartItem] = None) -> Dict[str, float]:
        """Order summary as the server will compute it."""
        return order_summary(((i.unit_price, i.quantity) for i in self._items(buy_now)), coupon_code)

    def place_order(
        self,
        shipping_info: Dict[str, Any],
        payment_method: str = GATEWAY_METHOD,
        coupon_code: Optional[str] = None,
        buy_now: Optional[CartItem] = None,
    ) -> Dict[str, Any]:
        if not self.session.authenticated:
            raise StoreError("Please login to place an order", 401)
        items = self._items(buy_now)
        if not items:
            raise ValueError("No items in order")

        order = {
            "items": [
                {"productId": i.product_id, "quantity": i.quantity, "size": i.size, "color": i.color}
                for i in items
            ],
            "shippingInfo": shipping_info,
            "paymentMethod": payment_method,
            "couponCode": coupon_code,
        }
        try:
            result = self.session.api.place_order(order)
        except ApiError as e:
            raise StoreError(e.message, e.status_code) from e
        logger.info("Placed order %s", result.get("order", {}).get("orderNumber"))

        # Gateway orders clear the cart once the payment is confirmed
        if payment_method != GATEWAY_METHOD and not buy_now:
            self.cart_store.clear()
        return result

    def confirm_payment(self, order_id: str, payment_id: str, signature: str, buy_now: bool = False) -> Dict[str, Any]:
        try:
            result = self.session.api.verify_payment(order_id, payment_id, signature)
        except ApiError as e:
            raise StoreError(e.message, e.status_code) from e
        if not buy_now:
            self.cart_store.clear()
        self.session.notifier.success("Payment successful! Your order has been placed.")
        return result
