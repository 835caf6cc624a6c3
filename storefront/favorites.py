# storefront/favorites.py
import logging
from typing import Any, Dict, List, Optional

from storefront.api import ApiError
from storefront.models import FavoriteItem, is_object_id
from storefront.session import FAVORITES
from storefront.sync import SyncedStore

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Server unavailable. Favorite saved locally and will sync when connection is restored."
DUPLICATE_DETAIL = "Product already in favorites"


class FavoritesStore(SyncedStore[FavoriteItem]):
    collection = FAVORITES
    label = "favorites"

    def _decode(self, raw: Dict[str, Any]) -> FavoriteItem:
        return FavoriteItem.from_payload(raw)

    def _encode(self, item: FavoriteItem) -> Dict[str, Any]:
        return item.model_dump(mode="json")

    def _fetch_remote(self) -> List[FavoriteItem]:
        return self._from_response(self.api.get_favorites())

    def _push(self, item: FavoriteItem):
        self.api.add_favorite(item.product_id)

    def _merge_key(self, item: FavoriteItem) -> Optional[str]:
        return item.product_id

    def _remote_clear(self):
        self.api.clear_favorites()

    def find(self, id_or_product_id: str) -> Optional[FavoriteItem]:
        return next(
            (f for f in self.items if f.id == id_or_product_id or f.product_id == id_or_product_id),
            None,
        )

    def is_favorite(self, product_id: str) -> bool:
        return any(f.product_id == product_id for f in self.items)

    def add(self, product: Dict[str, Any]) -> List[FavoriteItem]:
        product_id = product.get("_id") if product else None
        if not is_object_id(product_id):
            raise ValueError("Invalid product data")
        name = product.get("name", "")
        if self.is_favorite(product_id):
            self.notifier.success(f"{name} is already in your favorites!")
            return self.items

        favorite = FavoriteItem.from_payload(product)

        def remote():
            try:
                return self.api.add_favorite(product_id)
            except ApiError as e:
                # Already on the server: take the server list as it is
                if e.status_code == 400 and e.message == DUPLICATE_DETAIL:
                    return self.api.get_favorites()
                raise

        self._mutate(remote, lambda items: items + [favorite], OFFLINE_MESSAGE)
        self.notifier.success(f"{name} added to favorites!")
        return self.items

    def remove(self, id_or_product_id: str) -> List[FavoriteItem]:
        target = self.find(id_or_product_id)
        if target is None:
            self.notifier.error("Item not found in favorites")
            return self.items

        def local(items: List[FavoriteItem]) -> List[FavoriteItem]:
            return [f for f in items if f.product_id != target.product_id]

        if target.id is None:
            # Never reached the server, nothing to delete there
            self._commit(local(list(self.items)))
        else:
            self._mutate(lambda: self.api.remove_favorite(target.id), local, OFFLINE_MESSAGE)
        self.notifier.success("Removed from favorites")
        return self.items
