import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import get_db, parse_object_id, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])

SORT_OPTIONS = {
    "price-low-high": [("price", ASCENDING)],
    "price-high-low": [("price", DESCENDING)],
    "rating": [("rating", DESCENDING)],
    "newest": [("createdAt", DESCENDING)],
}
HIGHLIGHT_LIMIT = 4
RELATED_LIMIT = 3


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _number(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid value for {name}: '{value}'")


def build_product_query(
    category: Optional[str] = None,
    search: Optional[str] = None,
    demographic: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    sizes: Optional[str] = None,
    colors: Optional[str] = None,
    brands: Optional[str] = None,
    ratings: Optional[str] = None,
) -> Dict[str, Any]:
    """Compose the Mongo filter for the catalog listing. Each parameter narrows the result."""
    query: Dict[str, Any] = {}
    if category:
        query["category"] = category
    if demographic:
        query["demographic"] = demographic
    if _split(sizes):
        query["sizes"] = {"$in": _split(sizes)}
    if _split(colors):
        query["colors"] = {"$in": _split(colors)}
    if _split(brands):
        query["brand"] = {"$in": _split(brands)}
    if min_price or max_price:
        query["price"] = {}
        if min_price:
            query["price"]["$gte"] = _number("minPrice", min_price)
        if max_price:
            query["price"]["$lte"] = _number("maxPrice", max_price)
    if _split(ratings):
        query["rating"] = {"$gte": min(_number("ratings", r) for r in _split(ratings))}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"brand": pattern}, {"category": pattern}]
    return query


def _get_product_or_404(db: Database, product_id: str) -> Dict[str, Any]:
    oid = parse_object_id(product_id)
    product = db.products.find_one({"_id": oid}) if oid else None
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    demographic: Optional[str] = None,
    sort: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    sizes: Optional[str] = None,
    colors: Optional[str] = None,
    brands: Optional[str] = None,
    ratings: Optional[str] = None,
    db: Database = Depends(get_db),
):
    query = build_product_query(category, search, demographic, min_price, max_price, sizes, colors, brands, ratings)
    sort_spec = SORT_OPTIONS.get(sort or "newest", SORT_OPTIONS["newest"])
    products = db.products.find(query).sort(sort_spec)
    return [serialize_doc(p) for p in products]


@router.get("/featured")
def featured_products(db: Database = Depends(get_db)):
    products = list(db.products.find({"featured": True}).limit(HIGHLIGHT_LIMIT))
    if not products:
        logger.info("No featured products found, falling back to newest")
        products = list(db.products.find().sort("createdAt", DESCENDING).limit(HIGHLIGHT_LIMIT))
    return [serialize_doc(p) for p in products]


@router.get("/new-arrivals")
def new_arrivals(limit: int = Query(20, ge=1, le=100), db: Database = Depends(get_db)):
    products = db.products.find().sort("createdAt", DESCENDING).limit(limit)
    return [serialize_doc(p) for p in products]


@router.get("/best-sellers")
def best_sellers(db: Database = Depends(get_db)):
    products = db.products.find().sort("rating", DESCENDING).limit(HIGHLIGHT_LIMIT)
    return [serialize_doc(p) for p in products]


@router.get("/related/{product_id}")
def related_products(product_id: str, db: Database = Depends(get_db)):
    product = _get_product_or_404(db, product_id)
    shared = [
        {field: product[field]}
        for field in ("category", "brand", "demographic")
        if product.get(field) is not None
    ]
    if not shared:
        return []
    related = db.products.find({"_id": {"$ne": product["_id"]}, "$or": shared}).limit(RELATED_LIMIT)
    return [serialize_doc(p) for p in related]


@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return serialize_doc(_get_product_or_404(db, product_id))
