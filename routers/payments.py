import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from pymongo.database import Database

from auth import utils as auth_utils
from database import get_db, parse_object_id, utcnow
from payments.gateway import RazorpayGateway, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


class PaymentVerification(BaseModel):
    orderId: str
    paymentId: str
    signature: str


@router.post("/verify")
def verify_payment(
    payload: PaymentVerification,
    current_user: Dict[str, Any] = Depends(auth_utils.get_current_user),
    db: Database = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    # Only orders addressed by their document id are accepted
    oid = parse_object_id(payload.orderId)
    order = db.orders.find_one({"_id": oid, "user": current_user["_id"]}) if oid else None
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    if not gateway.verify_signature(payload.orderId, payload.paymentId, payload.signature):
        db.orders.update_one({"_id": oid}, {"$set": {"paymentStatus": "failed", "updatedAt": utcnow()}})
        logger.warning("Invalid payment signature for order %s", oid)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    db.orders.update_one(
        {"_id": oid},
        {"$set": {
            "paymentStatus": "paid",
            "razorpayPaymentId": payload.paymentId,
            "razorpaySignature": payload.signature,
            "updatedAt": utcnow(),
        }},
    )
    logger.info("Payment %s verified for order %s", payload.paymentId, oid)
    return {"message": "Payment verified successfully", "orderId": str(oid)}
