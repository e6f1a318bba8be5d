"""Tests for effective prices, subtotals and coupon totals."""

import pytest

from storefront import pricing
from storefront.errors import InvalidCoupon
from storefront.schemas import CartLine, Coupon


def line(product, quantity, color="Black", size="L"):
    return CartLine(product=product, selected_color=color, selected_size=size, quantity=quantity)


def test_effective_price_uses_promo_when_flagged(promo_product):
    assert pricing.effective_price(promo_product) == 60


def test_promo_price_ignored_without_flag(promo_product):
    promo_product.is_promotion = False

    assert pricing.effective_price(promo_product) == 80


def test_flagged_promotion_without_promo_price_uses_base_price(promo_product):
    promo_product.promo_price = 0

    assert pricing.effective_price(promo_product) == 80


def test_coupon_applies_to_whole_subtotal(product):
    lines = [line(product, 2)]
    coupon = Coupon(code="SAVE10", discount=10)

    assert pricing.subtotal(lines) == 200
    assert pricing.total(lines, coupon) == pytest.approx(180)
    assert pricing.discount_amount(lines, coupon) == pytest.approx(20)


def test_total_without_coupon_is_subtotal(product, promo_product):
    lines = [line(product, 1), line(promo_product, 3, "Red", "P")]

    assert pricing.subtotal(lines) == 280
    assert pricing.total(lines, None) == pricing.subtotal(lines)


@pytest.mark.parametrize("discount", [1, 10, 50, 100])
def test_total_never_exceeds_subtotal(product, discount):
    lines = [line(product, 3)]

    assert pricing.total(lines, Coupon(code="X", discount=discount)) <= pricing.subtotal(lines)


def test_empty_cart_costs_nothing():
    assert pricing.subtotal([]) == 0


def test_find_coupon_is_case_insensitive_on_input():
    coupons = [Coupon(code="BELLE10", discount=10)]

    assert pricing.find_coupon(coupons, "belle10").discount == 10
    assert pricing.find_coupon(coupons, " Belle10 ").code == "BELLE10"


def test_unknown_coupon_raises():
    with pytest.raises(InvalidCoupon):
        pricing.find_coupon([Coupon(code="BELLE10", discount=10)], "BELLE20")
