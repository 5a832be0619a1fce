"""Storefront pings: product views and popup signups."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import Settings
from cart_recovery.models.browse_event import BrowseEvent
from cart_recovery.schemas.browse import ProductViewIn
from cart_recovery.services.bigcommerce.client import BigCommerceClient
from cart_recovery.services.browse_tracker import BrowseTracker
from cart_recovery.services.cart_tracker import CartTracker

logger = logging.getLogger(__name__)


class TrackingService:

    def __init__(self, db: AsyncSession, settings: Settings, commerce: Optional[BigCommerceClient] = None):
        self.db = db
        self.settings = settings
        self.commerce = commerce
        self.browse = BrowseTracker(db)
        self.carts = CartTracker(db)

    async def record_product_view(self, view: ProductViewIn) -> BrowseEvent:
        """Store the view; if the visitor identified themselves, try to match a cart."""
        event = await self.browse.record_view(
            view.session_id,
            view.email,
            view.product_id,
            name=view.product_name,
            url=view.product_url,
            image=view.product_image,
            price=view.product_price,
        )
        if event.customer_email:
            await self.associate_visitor_email(event.customer_email)
        return event

    async def associate_visitor_email(self, email: str) -> Optional[str]:
        """
        Attach ``email`` to the newest anonymous open cart, locally and on
        BigCommerce. Best effort: failures are logged and ignored.
        """
        try:
            cart_id = await self.carts.associate_email(
                email, self.settings.EMAIL_ASSOCIATION_WINDOW_MINUTES
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error associating {email} with a cart: {e}")
            return None

        if cart_id and self.commerce is not None:
            await self.commerce.update_cart_email(cart_id, email)
        return cart_id
