import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from pymongo.database import Database

from auth import utils as auth_utils
from database import get_db, parse_object_id, serialize_doc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["Cart"])


# --- Pydantic Models ---
class CartItemAdd(BaseModel):
    productId: str
    quantity: int = Field(1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


# --- Helpers ---
def _same_line(item: Dict[str, Any], product_id: ObjectId, size: Optional[str], color: Optional[str]) -> bool:
    return item["productId"] == product_id and item.get("size") == size and item.get("color") == color


def populate_cart(db: Database, cart: Dict[str, Any]) -> Dict[str, Any]:
    """Replace each line's productId with the product document (None when it no longer exists)."""
    ids = list({item["productId"] for item in cart.get("items", [])})
    products = {p["_id"]: p for p in db.products.find({"_id": {"$in": ids}})} if ids else {}
    items = [{**item, "productId": products.get(item["productId"])} for item in cart.get("items", [])]
    return serialize_doc({**cart, "items": items})


def _get_cart_or_404(db: Database, user: Dict[str, Any]) -> Dict[str, Any]:
    cart = db.carts.find_one({"userId": str(user["_id"])})
    if not cart:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")
    return cart


def _save_items(db: Database, cart: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    now = utcnow()
    db.carts.update_one({"_id": cart["_id"]}, {"$set": {"items": items, "updatedAt": now}})
    return {**cart, "items": items, "updatedAt": now}


# --- API Endpoints ---
@router.get("")
def get_cart(
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    cart = db.carts.find_one({"userId": str(current_user["_id"])})
    if not cart:
        return {"items": []}
    return populate_cart(db, cart)


@router.post("")
def add_to_cart(
    payload: CartItemAdd,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    product_id = parse_object_id(payload.productId)
    if product_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid product ID")
    if not db.products.find_one({"_id": product_id}, {"_id": 1}):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    user_id = str(current_user["_id"])
    cart = db.carts.find_one({"userId": user_id})
    if not cart:
        now = utcnow()
        cart = {"userId": user_id, "items": [], "createdAt": now, "updatedAt": now}
        cart["_id"] = db.carts.insert_one(cart).inserted_id

    items = cart.get("items", [])
    existing = next((i for i in items if _same_line(i, product_id, payload.size, payload.color)), None)
    if existing:
        existing["quantity"] += payload.quantity
    else:
        items.append({
            "_id": ObjectId(),
            "productId": product_id,
            "quantity": payload.quantity,
            "size": payload.size,
            "color": payload.color,
        })

    cart = _save_items(db, cart, items)
    return populate_cart(db, cart)


@router.put("/{item_id}")
def update_cart_item(
    item_id: str,
    payload: CartItemUpdate,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    cart = _get_cart_or_404(db, current_user)
    items = cart.get("items", [])

    # A line's own _id wins; otherwise match the (product, size, color) tuple
    oid = parse_object_id(item_id)
    target = next((i for i in items if oid is not None and i.get("_id") == oid), None)
    if target is None and oid is not None:
        target = next((i for i in items if _same_line(i, oid, payload.size, payload.color)), None)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in cart")

    target["quantity"] = payload.quantity
    cart = _save_items(db, cart, items)
    return populate_cart(db, cart)


@router.delete("/{item_id}")
def remove_cart_item(
    item_id: str,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    cart = _get_cart_or_404(db, current_user)
    items = cart.get("items", [])

    oid = parse_object_id(item_id)
    remaining = [i for i in items if i.get("_id") != oid]
    if len(remaining) == len(items):
        remaining = [i for i in items if i["productId"] != oid]

    cart = _save_items(db, cart, remaining)
    return populate_cart(db, cart)


@router.delete("")
def clear_cart(
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    cart = _get_cart_or_404(db, current_user)
    _save_items(db, cart, [])
    return {"message": "Cart cleared successfully"}
