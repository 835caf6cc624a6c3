# storefront/models.py
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


# --- Product references ---
class ProductId(BaseModel):
    kind: Literal["id"] = "id"
    id: str


class PopulatedProduct(BaseModel):
    kind: Literal["populated"] = "populated"
    id: str
    name: str = ""
    price: Optional[float] = None
    images: List[str] = Field(default_factory=list)


ProductRef = Annotated[Union[ProductId, PopulatedProduct], Field(discriminator="kind")]


def product_ref(value: Any) -> Optional[Union[ProductId, PopulatedProduct]]:
    """
    Resolve a product reference read from the API or from local storage.

    Accepts a bare id string, a product document (`_id`, `name`, `price`,
    `images`), or an already tagged dict. Returns None for a product that
    no longer exists.
    """
    if value is None:
        return None
    if isinstance(value, (ProductId, PopulatedProduct)):
        return value
    if isinstance(value, str):
        return ProductId(id=value)
    if isinstance(value, dict):
        if value.get("kind") == "id":
            return ProductId.model_validate(value)
        if value.get("kind") == "populated":
            return PopulatedProduct.model_validate(value)
        product_id = value.get("_id") or value.get("id")
        if not product_id:
            raise ValueError("Product reference without an id")
        return PopulatedProduct(
            id=str(product_id),
            name=value.get("name") or "",
            price=value.get("price"),
            images=value.get("images") or [],
        )
    raise ValueError(f"Unsupported product reference: {value!r}")


# --- Cart ---
class CartItem(BaseModel):
    # Server line id, or the product id for lines that only exist locally
    id: str
    product: Optional[ProductRef] = None
    name: str = ""
    price: Optional[float] = None
    image: str = ""
    quantity: int = Field(1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CartItem":
        """Build from a server cart line or a stored line."""
        ref = product_ref(data["product"] if "product" in data else data.get("productId"))
        populated = ref if isinstance(ref, PopulatedProduct) else None
        line_id = data.get("id") or data.get("_id") or (ref.id if ref else None)
        if not line_id:
            raise ValueError("Cart line without an id")
        return cls(
            id=str(line_id),
            product=ref,
            name=data.get("name") or (populated.name if populated else ""),
            price=data["price"] if data.get("price") is not None else (populated.price if populated else None),
            image=data.get("image") or (populated.images[0] if populated and populated.images else ""),
            quantity=data.get("quantity", 1),
            size=data.get("size"),
            color=data.get("color"),
        )

    @property
    def product_id(self) -> Optional[str]:
        return self.product.id if self.product else None

    @property
    def key(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        return self.product_id, self.size or None, self.color or None

    @property
    def unit_price(self) -> float:
        if isinstance(self.product, PopulatedProduct) and self.product.price is not None:
            return self.product.price
        if self.price is not None:
            return self.price
        return 0


class Cart(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    total_items: int = 0
    total_price: float = 0

    @classmethod
    def from_items(cls, items: List[CartItem]) -> "Cart":
        return cls(
            items=list(items),
            total_items=sum(item.quantity for item in items),
            total_price=sum(item.unit_price * item.quantity for item in items),
        )


# --- Favorites ---
class FavoriteItem(BaseModel):
    id: Optional[str] = None  # favorite record id, None until the server has it
    product_id: str
    name: str = ""
    price: Optional[float] = None
    image: str = ""
    category: Optional[str] = None
    brand: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "FavoriteItem":
        """Build from a server favorite, a stored favorite, or a plain product document."""
        if "product_id" in data:
            return cls.model_validate(data)
        if "productId" in data:
            ref = product_ref(data["productId"])
            if ref is None:
                raise ValueError("Favorite without a product")
            return cls(
                id=str(data["_id"]) if data.get("_id") else None,
                product_id=ref.id,
                name=data.get("name") or "",
                price=data.get("price"),
                image=data.get("image") or "",
                category=data.get("category"),
                brand=data.get("brand"),
            )
        images = data.get("images") or []
        return cls(
            product_id=str(data["_id"]),
            name=data.get("name") or "",
            price=data.get("price"),
            image=images[0] if images else "",
            category=data.get("category"),
            brand=data.get("brand"),
        )
