from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import Field

from cart_recovery.schemas.base import BaseSchema


class ProductViewIn(BaseSchema):
    """Payload posted by the storefront tracking snippet (camelCase keys)"""
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    email: Optional[str] = None
    product_id: Optional[int] = Field(default=None, alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    product_url: Optional[str] = Field(default=None, alias="productUrl")
    product_image: Optional[str] = Field(default=None, alias="productImage")
    product_price: Optional[Union[Decimal, str]] = Field(default=None, alias="productPrice")


class PopupSignupIn(BaseSchema):
    email: Optional[str] = None


class BrowseEventRead(BaseSchema):
    id: int
    session_id: Optional[str] = None
    customer_email: Optional[str] = None
    product_id: int
    product_name: Optional[str] = None
    product_url: Optional[str] = None
    product_image: Optional[str] = None
    product_price: Optional[Decimal] = None
    viewed_at: datetime
    added_to_cart: bool
    email_sent: bool


class EligibleProduct(BaseSchema):
    """Most recent view of one product, as used in a browse email"""
    product_id: int
    product_name: Optional[str] = None
    product_url: Optional[str] = None
    product_image: Optional[str] = None
    product_price: Optional[Decimal] = None
    viewed_at: datetime
