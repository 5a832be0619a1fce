# tests/unit/services/test_email_templates.py
from datetime import datetime
from decimal import Decimal

import pytest

from cart_recovery.core.enums import TemplateKind
from cart_recovery.schemas.browse import EligibleProduct
from cart_recovery.services.email_templates import (
    browse_payload,
    cart_payload,
    first_line_item,
    render_email,
    sample_payload,
)

STORE = "https://shop.example.com"


def test_cart_payload_uses_first_line_item(sample_cart_data):
    payload = cart_payload("cart-1", sample_cart_data, STORE)

    assert payload["subject"] == "Oops! You left Wildflower Dress in your cart"
    assert payload["cart_id"] == "cart-1"
    assert payload["product"] == {
        "name": "Wildflower Dress",
        "image": "https://cdn.example.com/wildflower.jpg",
        "url": "https://shop.example.com/wildflower-dress/",
        "price": "11.50",
    }


def test_physical_items_come_first(sample_cart_data):
    sample_cart_data["line_items"]["physical_items"] = [{"name": "Printed Pattern", "list_price": 20}]

    assert first_line_item(sample_cart_data)["name"] == "Printed Pattern"
    assert cart_payload("c", sample_cart_data, STORE)["product"]["price"] == "20.00"


def test_empty_cart_falls_back_to_defaults():
    payload = cart_payload("c", None, STORE)

    assert payload["subject"] == "Oops! You left Your items in your cart"
    assert payload["product"]["url"] == STORE
    assert payload["product"]["image"] == ""
    assert payload["product"]["price"] == "0.00"


def test_browse_payload_names_top_product():
    products = [
        EligibleProduct(product_id=2, product_name="Alex & Anna Pajamas", product_image="/a.jpg",
                        product_price=Decimal("9"), viewed_at=datetime(2026, 3, 2, 10, 10)),
        EligibleProduct(product_id=1, product_name=None, product_image="/b.jpg",
                        viewed_at=datetime(2026, 3, 2, 10, 0)),
    ]

    payload = browse_payload(products)

    assert payload["subject"] == "Still thinking about Alex & Anna Pajamas?"
    assert [p["product_id"] for p in payload["products"]] == [2, 1]
    assert payload["products"][0]["price"] == "9.00"
    assert payload["products"][1]["name"] == "this pattern"


@pytest.mark.parametrize("kind", [TemplateKind.CART, TemplateKind.BROWSE])
def test_sample_emails_render(kind, settings):
    payload = sample_payload(kind, settings)

    html = render_email(kind, payload, settings)

    assert payload["subject"].startswith("TEST: ")
    assert settings.STORE_NAME in html
    assert "{$unsubscribe}" in html


def test_browse_email_lists_every_product(settings):
    html = render_email(TemplateKind.BROWSE, sample_payload(TemplateKind.BROWSE, settings), settings)

    assert "Wildflower Dress" in html
    assert "Alex &amp; Anna Pajamas" in html
