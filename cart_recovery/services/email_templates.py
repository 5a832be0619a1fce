"""Payloads, subject lines and HTML bodies for abandonment emails."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from cart_recovery.core.config import Settings
from cart_recovery.core.enums import TemplateKind
from cart_recovery.core.templates import templates
from cart_recovery.core.utils import to_decimal

logger = logging.getLogger(__name__)

LINE_ITEM_GROUPS = ("physical_items", "digital_items", "custom_items")

TEMPLATE_NAMES = {
    TemplateKind.CART: "email/abandoned_cart.html",
    TemplateKind.BROWSE: "email/browse_abandonment.html",
}


def first_line_item(cart_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """First line item across physical, digital and custom items (in that order)."""
    line_items = (cart_data or {}).get("line_items") or {}
    for group in LINE_ITEM_GROUPS:
        items = line_items.get(group) or []
        if items:
            return items[0]
    return {}


def cart_product(cart_data: Optional[Dict[str, Any]], store_url: str) -> Dict[str, str]:
    item = first_line_item(cart_data)
    price = item.get("sale_price") or item.get("list_price") or 0
    return {
        "name": item.get("name") or "Your items",
        "image": item.get("image_url") or "",
        "url": item.get("url") or store_url,
        "price": f"{to_decimal(price):.2f}",
    }


def cart_payload(cart_id: str, cart_data: Optional[Dict[str, Any]], store_url: str) -> Dict[str, Any]:
    product = cart_product(cart_data, store_url)
    return {
        "subject": f"Oops! You left {product['name']} in your cart",
        "cart_id": cart_id,
        "product": product,
    }


def browse_payload(products: Iterable[Any]) -> Dict[str, Any]:
    """
    ``products`` are rows/schemas with product_* attributes, already ranked
    most-recent first. The subject names the top product.
    """
    items: List[Dict[str, Any]] = []
    for product in products:
        price: Optional[Decimal] = getattr(product, "product_price", None)
        items.append({
            "product_id": product.product_id,
            "name": product.product_name or "this pattern",
            "url": product.product_url or "",
            "image": product.product_image or "",
            "price": f"{to_decimal(price):.2f}",
        })
    top_name = items[0]["name"] if items else "these patterns"
    return {
        "subject": f"Still thinking about {top_name}?",
        "products": items,
    }


def render_email(kind: TemplateKind, payload: Dict[str, Any], settings: Settings) -> str:
    """Render the HTML body for a notification payload"""
    template = templates.get_template(TEMPLATE_NAMES[kind])
    return template.render(
        store={
            "name": settings.STORE_NAME,
            "url": settings.STORE_URL,
            "address": settings.STORE_ADDRESS,
        },
        cart_url=settings.cart_url,
        headline=(
            "Oops! You left something behind..."
            if kind == TemplateKind.CART
            else "Still thinking about it?"
        ),
        customer_name=payload.get("customer_name"),
        product=payload.get("product"),
        products=payload.get("products", []),
    )


def sample_payload(kind: TemplateKind, settings: Settings) -> Dict[str, Any]:
    """Fixed sample content for the /api/test-email endpoint"""
    store_url = settings.STORE_URL.rstrip('/')
    if kind == TemplateKind.CART:
        payload = cart_payload(
            "test-cart",
            {"line_items": {"digital_items": [{
                "name": "Women's Sweatshirt Dress Pattern",
                "image_url": "https://cdn11.bigcommerce.com/s-m91f4azz/products/10307/images/57602/_43821__02557.1767096507.215.338.jpg",
                "url": f"{store_url}/women-s-sweatshirt-dress-pattern/",
                "sale_price": 12.95,
            }]}},
            store_url,
        )
    else:
        payload = {
            "subject": "Still thinking about Wildflower Dress?",
            "customer_name": "there",
            "products": [
                {"product_id": 189, "name": "Wildflower Dress", "price": "0.00",
                 "image": "https://cdn11.bigcommerce.com/s-m91f4azz/images/stencil/1280x1280/products/189/43834/_1174__26498.1765947170.jpg",
                 "url": f"{store_url}/wildflower-dress/"},
                {"product_id": 255, "name": "Alex & Anna Pajamas", "price": "0.00",
                 "image": "https://cdn11.bigcommerce.com/s-m91f4azz/images/stencil/1280x1280/products/255/6498/Alex_and_Anna_pajamas_pattern__16653.1557262025.jpg",
                 "url": f"{store_url}/alex-anna-pajamas/"},
            ],
        }
    payload["subject"] = f"TEST: {payload['subject']}"
    return payload
