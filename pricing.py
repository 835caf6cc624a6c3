# pricing.py
from typing import Dict, Iterable, Optional, Tuple

FREE_SHIPPING_THRESHOLD = 50
SHIPPING_FEE = 5
TAX_RATE = 0.05

DISCOUNT_CODES = {
    "SUMMER25": 0.25,
}


def discount_rate(code: Optional[str]) -> float:
    return DISCOUNT_CODES.get((code or "").strip().upper(), 0)


def order_summary(lines: Iterable[Tuple[float, int]], coupon_code: Optional[str] = None) -> Dict[str, float]:
    """Summary for (unit price, quantity) lines: subtotal, shipping, tax, discount, total."""
    subtotal = sum(price * quantity for price, quantity in lines)
    shipping = 0 if subtotal >= FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    tax = subtotal * TAX_RATE
    discount = subtotal * discount_rate(coupon_code)
    return {
        "subtotal": round(subtotal, 2),
        "shipping": shipping,
        "tax": round(tax, 2),
        "discount": round(discount, 2),
        "total": round(subtotal + shipping + tax - discount, 2),
    }
