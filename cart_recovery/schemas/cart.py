from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from cart_recovery.schemas.base import BaseSchema


class CartRead(BaseSchema):
    id: int
    cart_id: str
    customer_email: Optional[str] = None
    customer_id: Optional[int] = None
    cart_data: Optional[Dict[str, Any]] = None
    cart_total: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime
    converted: bool
    email_sent_1: bool
    email_sent_2: bool
    email_sent_3: bool
