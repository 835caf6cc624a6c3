import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import utils as auth_utils
from database import get_db, parse_object_id, serialize_doc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])

# Product fields copied into the favorite when it is created
SNAPSHOT_FIELDS = ("name", "price", "description", "category", "brand", "demographic", "sizes", "colors", "rating")


class FavoriteAdd(BaseModel):
    productId: str


def _list_favorites(db: Database, user: Dict[str, Any]):
    return [serialize_doc(f) for f in db.favorites.find({"user": user["_id"]}).sort("createdAt", 1)]


def favorite_snapshot(user: Dict[str, Any], product: Dict[str, Any]) -> Dict[str, Any]:
    images = product.get("images") or []
    favorite = {field: product.get(field) for field in SNAPSHOT_FIELDS}
    favorite.update({
        "user": user["_id"],
        "productId": product["_id"],
        "image": images[0] if images else "",
        "createdAt": utcnow(),
    })
    return favorite


@router.get("")
def get_favorites(
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    return _list_favorites(db, current_user)


@router.post("", status_code=status.HTTP_201_CREATED)
def add_favorite(
    payload: FavoriteAdd,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    product_id = parse_object_id(payload.productId)
    if product_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid product ID")

    if db.favorites.find_one({"user": current_user["_id"], "productId": product_id}):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product already in favorites")

    product = db.products.find_one({"_id": product_id})
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    try:
        db.favorites.insert_one(favorite_snapshot(current_user, product))
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Product already in favorites")

    return _list_favorites(db, current_user)


@router.delete("/{favorite_id}")
def remove_favorite(
    favorite_id: str,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    oid = parse_object_id(favorite_id)
    if oid is not None:
        db.favorites.delete_one({"_id": oid, "user": current_user["_id"]})
    return _list_favorites(db, current_user)


@router.delete("")
def clear_favorites(
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    result = db.favorites.delete_many({"user": current_user["_id"]})
    logger.info("Cleared %d favorites for user %s", result.deleted_count, current_user["_id"])
    return []
