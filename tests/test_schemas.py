"""Tests for the repository wire mapping and client-facing aliases."""

import pytest
from pydantic import ValidationError

from storefront.schemas import (
    Coupon,
    Order,
    OrderLine,
    Product,
    SiteSettings,
    StockVariant,
    order_to_record,
    product_from_record,
    product_to_record,
)


def test_missing_fields_get_explicit_defaults():
    product = product_from_record({"id": "abc", "name": "Body Seda", "price": "149.9"})

    assert product.id == "abc"
    assert product.price == pytest.approx(149.9)
    assert product.promo_price == 0
    assert product.stock == []
    assert product.colors == []
    assert product.sizes == []
    assert product.visible is True
    assert product.is_promotion is False
    assert product.is_multicolor is False


def test_null_flags_and_malformed_lists_are_defaulted():
    product = product_from_record({
        "name": "Camisola",
        "price": 90,
        "promo_price": None,
        "visible": None,
        "is_promotion": None,
        "colors": "Preto",
        "sizes": None,
        "stock": {"color": "Preto"},
    })

    assert product.promo_price == 0
    assert product.visible is True
    assert product.is_promotion is False
    assert product.colors == []
    assert product.sizes == []
    assert product.stock == []


def test_stock_quantities_are_clamped_and_variants_deduplicated():
    product = product_from_record({
        "name": "Conjunto",
        "price": 10,
        "colors": ["Preto"],
        "sizes": ["P"],
        "stock": [
            {"color": "Preto", "size": "P", "quantity": -4},
            {"color": "Preto", "size": "P", "quantity": 9},
        ],
    })

    assert product.stock == [StockVariant(color="Preto", size="P", quantity=0)]


def test_hidden_product_stays_hidden():
    assert product_from_record({"name": "x", "visible": False}).visible is False


def test_product_to_record_is_snake_case_without_id(promo_product):
    record = product_to_record(promo_product)

    assert "id" not in record
    assert record["promo_price"] == 60
    assert record["is_promotion"] is True
    assert record["stock"] == [{"color": "Red", "size": "P", "quantity": 10}]
    assert product_from_record({**record, "id": "p2"}) == promo_product


def test_product_to_record_partial_fields(product):
    assert set(product_to_record(product, fields={"stock"})) == {"stock"}


def test_client_payload_uses_camel_case(promo_product):
    payload = promo_product.model_dump(by_alias=True)

    assert payload["promoPrice"] == 60
    assert payload["isPromotion"] is True
    assert Product.model_validate(payload) == promo_product


def test_coupon_codes_are_stored_upper_case():
    assert Coupon(code=" save10 ", discount=10).code == "SAVE10"


def test_coupon_discount_must_be_a_percentage():
    with pytest.raises(ValidationError):
        Coupon(code="X", discount=120)


def test_orders_are_immutable():
    order = Order(
        customer_name="Ana",
        customer_address="Rua 1",
        payment_method="PIX",
        items=(OrderLine(name="A", price=10, selected_color="Preto", selected_size="P", quantity=1),),
        subtotal=10,
        total=10,
    )

    with pytest.raises(ValidationError):
        order.total = 0
    assert order_to_record(order)["items"][0]["name"] == "A"


def test_malformed_variants_are_dropped():
    product = product_from_record({
        "name": "Sutiã",
        "stock": [{"color": "Preto"}, "junk", {"color": "Preto", "size": "M", "quantity": 2}],
    })

    assert product.stock == [StockVariant(color="Preto", size="M", quantity=2)]


def test_out_of_range_and_mistyped_fields_are_defaulted():
    product = product_from_record({
        "name": "Body",
        "price": -5,
        "promo_price": "abc",
        "colors": ["Preto", 3, None],
        "sizes": ["M", {"label": "G"}],
        "icon": 7,
        "image": 0,
        "description": None,
        "visible": "sim",
        "is_multicolor": 1,
        "stock": [{"color": 1, "size": "M"}, {"color": "Preto", "size": "M", "quantity": "2"}],
    })

    assert product.price == 0
    assert product.promo_price == 0
    assert product.colors == ["Preto"]
    assert product.sizes == ["M"]
    assert product.icon == "✨"
    assert product.image is None
    assert product.description == ""
    assert product.visible is True
    assert product.is_multicolor is False
    assert product.stock == [StockVariant(color="Preto", size="M", quantity=2)]


def test_record_without_usable_name_is_rejected():
    with pytest.raises(ValidationError):
        product_from_record({"name": {"pt": "Body"}, "price": 10})


def test_site_settings_use_client_field_names():
    assert SiteSettings().model_dump(by_alias=True) == {"collectionTitle": "Nova Coleção"}
