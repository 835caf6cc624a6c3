# storefront/api.py
import logging
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {502, 503, 504}


class ApiError(Exception):
    """A failed call. `status_code` is None when the server could not be reached."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code in TRANSIENT_STATUSES

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    def __repr__(self):
        return f"ApiError({self.status_code!r}, {self.message!r})"


class StoreAPI:
    """
    Thin client for the storefront REST API.

    Pass `client` to reuse an existing httpx.Client (FastAPI's TestClient
    works too); its base_url is used for every path.
    """

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.client = client or httpx.Client(base_url=base_url or settings.STOREFRONT_API_URL, timeout=timeout)
        self.token: Optional[str] = None

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.client.request(method, path, json=json, params=params, headers=self._headers())
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(None, f"Could not reach server: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("detail") if isinstance(body, dict) else None
            raise ApiError(response.status_code, str(detail or response.reason_phrase or "Request failed"))
        return response.json()

    def close(self):
        self.client.close()

    # --- Users ---
    def register(self, name: str, email: str, password: str):
        return self.request("POST", "/api/users/register", json={"name": name, "email": email, "password": password})

    def login(self, email: str, password: str):
        return self.request("POST", "/api/users/login", json={"email": email, "password": password})

    def get_profile(self):
        return self.request("GET", "/api/users/profile")

    def update_profile(self, **fields):
        return self.request("PUT", "/api/users/profile", json=fields)

    # --- Products ---
    def list_products(self, **params):
        # List filters are sent comma separated
        query = {k: ",".join(v) if isinstance(v, (list, tuple)) else v for k, v in params.items() if v is not None}
        return self.request("GET", "/api/products", params=query)

    def get_product(self, product_id: str):
        return self.request("GET", f"/api/products/{product_id}")

    # --- Cart ---
    def get_cart(self):
        return self.request("GET", "/api/cart")

    def add_to_cart(self, product_id: str, quantity: int = 1, size: Optional[str] = None, color: Optional[str] = None):
        body = {"productId": product_id, "quantity": quantity, "size": size, "color": color}
        return self.request("POST", "/api/cart", json=body)

    def update_cart_item(self, item_id: str, quantity: int, size: Optional[str] = None, color: Optional[str] = None):
        body = {"quantity": quantity, "size": size, "color": color}
        return self.request("PUT", f"/api/cart/{item_id}", json=body)

    def remove_cart_item(self, item_id: str):
        return self.request("DELETE", f"/api/cart/{item_id}")

    def clear_cart(self):
        return self.request("DELETE", "/api/cart")

    # --- Favorites ---
    def get_favorites(self):
        return self.request("GET", "/api/favorites")

    def add_favorite(self, product_id: str):
        return self.request("POST", "/api/favorites", json={"productId": product_id})

    def remove_favorite(self, favorite_id: str):
        return self.request("DELETE", f"/api/favorites/{favorite_id}")

    def clear_favorites(self):
        return self.request("DELETE", "/api/favorites")

    # --- Orders & payments ---
    def place_order(self, order: Dict[str, Any]):
        return self.request("POST", "/api/orders", json=order)

    def list_orders(self):
        return self.request("GET", "/api/orders")

    def get_order(self, order_id: str):
        return self.request("GET", f"/api/orders/{order_id}")

    def cancel_order(self, order_id: str):
        return self.request("PUT", f"/api/orders/{order_id}/cancel")

    def verify_payment(self, order_id: str, payment_id: str, signature: str):
        body = {"orderId": order_id, "paymentId": payment_id, "signature": signature}
        return self.request("POST", "/api/payments/verify", json=body)
