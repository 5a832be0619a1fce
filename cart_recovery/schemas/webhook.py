from typing import Any, Dict, Optional

from cart_recovery.schemas.base import BaseSchema


class BigCommerceWebhook(BaseSchema):
    """
    BigCommerce webhook envelope, e.g.
    {"scope": "store/cart/created", "store_id": "...", "data": {"type": "cart", "id": "..."}}
    """
    scope: Optional[str] = None
    store_id: Optional[str] = None
    hash: Optional[str] = None
    created_at: Optional[int] = None
    producer: Optional[str] = None
    data: Dict[str, Any] = {}

    @property
    def cart_id(self) -> Optional[str]:
        value = self.data.get("id") or self.data.get("cartId")
        return str(value) if value else None

    @property
    def order_id(self) -> Optional[str]:
        value = self.data.get("id")
        return str(value) if value else None


class WebhookAck(BaseSchema):
    received: bool = True
    note: Optional[str] = None
    error: Optional[str] = None
