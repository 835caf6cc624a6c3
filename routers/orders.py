import logging
import random
import time
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, EmailStr, Field
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import utils as auth_utils
from config import settings
from database import get_db, parse_object_id, serialize_doc, utcnow
from payments.gateway import GatewayError, RazorpayGateway, get_gateway
from pricing import order_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

ORDER_NUMBER_ATTEMPTS = 3


# --- Pydantic Models ---
class ShippingInfo(BaseModel):
    fullName: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postalCode: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class OrderItemIn(BaseModel):
    # productId arrives either as an id string or as a populated product object
    productId: Union[str, Dict[str, Any], None] = None
    line_id: Optional[str] = Field(None, alias="_id")
    quantity: int = Field(1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None

    model_config = {"populate_by_name": True}

    def product_ref(self) -> Optional[str]:
        if isinstance(self.productId, dict):
            return self.productId.get("_id")
        return self.productId or self.line_id


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(default_factory=list)
    shippingInfo: Optional[ShippingInfo] = None
    paymentMethod: str = Field(..., min_length=1)
    couponCode: Optional[str] = None


# --- Helpers ---
def generate_order_number() -> str:
    # Not unique by construction; the unique index on orderNumber decides
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def snapshot_items(db: Database, items: List[OrderItemIn]) -> List[Dict[str, Any]]:
    """Copy name, price and image from the live products. The copy is never updated afterwards."""
    refs = []
    for item in items:
        oid = parse_object_id(item.product_ref())
        if oid is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid product {item.product_ref()}")
        refs.append((oid, item))

    products = {p["_id"]: p for p in db.products.find({"_id": {"$in": [oid for oid, _ in refs]}})}
    snapshot = []
    for oid, item in refs:
        product = products.get(oid)
        if product is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid product {oid}")
        images = product.get("images") or []
        snapshot.append({
            "productId": oid,
            "name": product.get("name"),
            "price": float(product.get("price", 0)),
            "image": images[0] if images else "",
            "quantity": item.quantity,
            "size": item.size,
            "color": item.color,
        })
    return snapshot


async def create_gateway_order(gateway: RazorpayGateway, total: float, receipt: str) -> str:
    """Remote order id, or a local placeholder when the gateway is unusable."""
    try:
        remote = await gateway.create_order(int(round(total * 100)), settings.PAYMENT_CURRENCY, receipt)
        return remote["id"]
    except GatewayError as e:
        logger.warning("Falling back to placeholder payment order for %s: %s", receipt, e)
        return f"mock_order_{int(time.time() * 1000)}"


def insert_order(db: Database, order: Dict[str, Any]) -> Dict[str, Any]:
    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        try:
            db.orders.insert_one(order)
            return order
        except DuplicateKeyError:
            if attempt == ORDER_NUMBER_ATTEMPTS:
                raise
            logger.warning("Order number %s already taken, regenerating", order["orderNumber"])
            order["orderNumber"] = generate_order_number()
    return order


def get_order_or_404(db: Database, order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    oid = parse_object_id(order_id)
    order = db.orders.find_one({"_id": oid, "user": user["_id"]}) if oid else None
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


# --- API Endpoints ---
@router.get("")
def list_orders(
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    orders = db.orders.find({"user": current_user["_id"]}).sort("createdAt", DESCENDING)
    return [serialize_doc(o) for o in orders]


@router.get("/{order_id}")
def get_order(
    order_id: str,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    return serialize_doc(get_order_or_404(db, order_id, current_user))


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
):
    order = get_order_or_404(db, order_id, current_user)
    if order.get("orderStatus") != "processing":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Order cannot be cancelled in {order.get('orderStatus')} status",
        )

    now = utcnow()
    result = db.orders.update_one(
        {"_id": order["_id"], "orderStatus": "processing"},
        {"$set": {"orderStatus": "cancelled", "updatedAt": now}},
    )
    if result.matched_count == 0:
        # Status moved on between the read and the write
        current = db.orders.find_one({"_id": order["_id"]}, {"orderStatus": 1}) or {}
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Order cannot be cancelled in {current.get('orderStatus')} status",
        )
    order.update({"orderStatus": "cancelled", "updatedAt": now})
    logger.info("Order %s cancelled", order["_id"])
    return {"message": "Order cancelled successfully", "order": serialize_doc(order)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    if not payload.items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No items in order")
    if payload.shippingInfo is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Shipping information is required")

    items = await run_in_threadpool(snapshot_items, db, payload.items)
    summary = order_summary(((i["price"], i["quantity"]) for i in items), payload.couponCode)
    order_number = generate_order_number()

    razorpay_order_id = None
    if payload.paymentMethod == "razorpay":
        razorpay_order_id = await create_gateway_order(gateway, summary["total"], order_number)

    now = utcnow()
    order = {
        "user": current_user["_id"],
        "orderNumber": order_number,
        "items": items,
        "shippingInfo": payload.shippingInfo.model_dump(),
        "orderSummary": summary,
        "paymentMethod": payload.paymentMethod,
        "paymentStatus": "pending",
        "orderStatus": "processing",
        "razorpayOrderId": razorpay_order_id,
        "trackingNumber": None,
        "estimatedDelivery": None,
        "createdAt": now,
        "updatedAt": now,
    }
    order = await run_in_threadpool(insert_order, db, order)
    logger.info("Order %s placed by user %s", order["orderNumber"], current_user["_id"])

    return {
        "orderId": razorpay_order_id or str(order["_id"]),
        "amount": summary["total"],
        "order": serialize_doc(order),
    }
