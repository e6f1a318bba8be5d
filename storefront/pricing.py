"""Pricing rules. Pure functions over cart lines and coupons."""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .errors import InvalidCoupon
from .schemas import CartLine, Coupon, Product


def effective_price(product: Product) -> float:
    if product.is_promotion and product.promo_price > 0:
        return product.promo_price
    return product.price


def subtotal(lines: Iterable[CartLine]) -> float:
    return sum(effective_price(line.product) * line.quantity for line in lines)


def total(lines: Sequence[CartLine], coupon: Optional[Coupon] = None) -> float:
    amount = subtotal(lines)
    if coupon is not None:
        return amount * (1 - coupon.discount / 100)
    return amount


def discount_amount(lines: Sequence[CartLine], coupon: Optional[Coupon] = None) -> float:
    return subtotal(lines) - total(lines, coupon)


def find_coupon(coupons: Iterable[Coupon], code: str) -> Coupon:
    wanted = (code or "").strip().upper()
    for coupon in coupons:
        if coupon.code == wanted:
            return coupon
    raise InvalidCoupon(code)
