from typing import Optional

from cart_recovery.schemas.base import BaseSchema


class CartStats(BaseSchema):
    abandoned_with_email: int = 0
    abandoned_anonymous: int = 0
    converted: int = 0
    cart_emails_sent: int = 0


class BrowseStats(BaseSchema):
    total_views: int = 0
    unique_visitors_with_email: int = 0
    browse_emails_sent: int = 0


class StatsResponse(BaseSchema):
    carts: CartStats
    browse: BrowseStats
    window_days: int
    restricted_mode: bool
    restricted_recipient: Optional[str] = None
