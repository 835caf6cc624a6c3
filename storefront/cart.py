# storefront/cart.py
import logging
from typing import Any, Dict, List, Optional

from storefront.models import Cart, CartItem, PopulatedProduct, is_object_id
from storefront.session import CART
from storefront.sync import SyncedStore

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Server unavailable. Changes saved locally and will sync when connection is restored."


class CartStore(SyncedStore[CartItem]):
    collection = CART
    label = "cart"

    @property
    def cart(self) -> Cart:
        # Totals always come from the current lines
        return Cart.from_items(self.items)

    # --- Codec ---
    def _decode(self, raw: Dict[str, Any]) -> CartItem:
        return CartItem.from_payload(raw)

    def _encode(self, item: CartItem) -> Dict[str, Any]:
        return item.model_dump(mode="json")

    def _stored_items(self, raw: Any) -> List[Any]:
        if isinstance(raw, dict):
            return raw.get("items") or []
        return raw if isinstance(raw, list) else []

    def _to_storage(self, items: List[CartItem]) -> Dict[str, Any]:
        cart = Cart.from_items(items)
        return {
            "items": [self._encode(item) for item in cart.items],
            "totalItems": cart.total_items,
            "totalPrice": cart.total_price,
        }

    # --- Server ---
    def _fetch_remote(self) -> List[CartItem]:
        return self._from_response(self.api.get_cart())

    def _push(self, item: CartItem):
        self.api.add_to_cart(item.product_id, item.quantity, item.size, item.color)

    def _merge_key(self, item: CartItem) -> Optional[str]:
        return item.product_id

    def _remote_clear(self):
        self.api.clear_cart()

    # --- Lookups ---
    def find(self, item_id: str) -> Optional[CartItem]:
        return next((i for i in self.items if i.id == item_id or i.product_id == item_id), None)

    # --- Mutations ---
    def add(self, product: Dict[str, Any], quantity: int = 1, size: Optional[str] = None, color: Optional[str] = None) -> Cart:
        product_id = product.get("_id") if product else None
        if not is_object_id(product_id):
            raise ValueError("Invalid product data or product ID")
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        images = product.get("images") or []
        line = CartItem(
            id=product_id,
            product=PopulatedProduct(id=product_id, name=product.get("name", ""), price=product.get("price"), images=images),
            name=product.get("name", ""),
            price=product.get("price"),
            image=images[0] if images else "",
            quantity=quantity,
            size=size or None,
            color=color or None,
        )

        def local(items: List[CartItem]) -> List[CartItem]:
            for index, existing in enumerate(items):
                if existing.key == line.key:
                    items[index] = existing.model_copy(update={"quantity": existing.quantity + quantity})
                    return items
            return items + [line]

        self._mutate(lambda: self.api.add_to_cart(product_id, quantity, line.size, line.color), local, OFFLINE_MESSAGE)
        self.notifier.success(f"{line.name} added to cart!")
        return self.cart

    def update_quantity(self, item_id: str, quantity: int) -> Cart:
        if not is_object_id(item_id):
            raise ValueError("Invalid item ID format")
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        target = self.find(item_id)

        def remote():
            size, color = (target.size, target.color) if target else (None, None)
            return self.api.update_cart_item(item_id, quantity, size, color)

        def local(items: List[CartItem]) -> List[CartItem]:
            return [
                i.model_copy(update={"quantity": quantity}) if i.id == item_id or i.product_id == item_id else i
                for i in items
            ]

        self._mutate(remote, local, OFFLINE_MESSAGE)
        return self.cart

    def remove(self, item_id: str) -> Cart:
        if not is_object_id(item_id):
            raise ValueError("Invalid item ID format")

        def local(items: List[CartItem]) -> List[CartItem]:
            remaining = [i for i in items if i.id != item_id]
            if len(remaining) == len(items):
                remaining = [i for i in items if i.product_id != item_id]
            return remaining

        self._mutate(lambda: self.api.remove_cart_item(item_id), local, OFFLINE_MESSAGE)
        self.notifier.success("Item removed from cart")
        return self.cart

    def clear(self) -> Cart:
        super().clear()
        return self.cart
