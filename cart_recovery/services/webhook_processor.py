"""
Processing for BigCommerce webhooks.

BigCommerce only sends identifiers, so every handler looks the entity up via
the API first. Handlers never raise to the route: the platform retries any
non-200 response, and a retry storm is worse than a missed update. Problems
come back as a ``note`` (expected gaps) or ``error`` (unexpected failures)
on an otherwise successful acknowledgement.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.schemas.webhook import BigCommerceWebhook, WebhookAck
from cart_recovery.services.bigcommerce.client import BigCommerceClient
from cart_recovery.services.cart_tracker import CartTracker
from cart_recovery.services.mailerlite.delivery import MailerLiteDelivery

logger = logging.getLogger(__name__)


class WebhookProcessor:

    def __init__(
        self,
        db: AsyncSession,
        commerce: BigCommerceClient,
        delivery: Optional[MailerLiteDelivery] = None,
    ):
        self.db = db
        self.commerce = commerce
        self.delivery = delivery
        self.carts = CartTracker(db)

    async def process_cart_event(self, envelope: BigCommerceWebhook) -> WebhookAck:
        """cart created / cart updated: fetch the cart and upsert it"""
        cart_id = envelope.cart_id
        if not cart_id:
            return WebhookAck(note="No cart ID")

        try:
            cart = await self.commerce.fetch_cart(cart_id)
            if not cart:
                return WebhookAck(note="Could not fetch cart")

            customer_id = cart.get("customer_id") or None
            email = cart.get("email")
            if not email and customer_id:
                email = await self.commerce.fetch_customer_email(customer_id)

            await self.carts.upsert_cart(
                cart_id,
                email=email,
                customer_id=customer_id,
                snapshot=cart,
                total=cart.get("cart_amount") or 0,
            )
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error processing cart webhook for {cart_id}: {e}")
            return WebhookAck(error=str(e))

        return WebhookAck()

    async def process_order_created(self, envelope: BigCommerceWebhook) -> WebhookAck:
        """order created: mark the originating cart converted"""
        order_id = envelope.order_id
        if not order_id:
            return WebhookAck(note="No order ID")

        try:
            order = await self.commerce.fetch_order(order_id)
            if not order:
                return WebhookAck(note="Could not fetch order")

            cart_id = order.get("cart_id")
            if cart_id:
                await self.carts.mark_converted(cart_id)
                logger.info(f"Cart {cart_id} marked as converted (Order {order_id})")
            else:
                logger.info(f"Order {order_id} has no cart id")

            if self.delivery is not None and order.get("billing_email"):
                await self.delivery.unenroll(order["billing_email"])
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error processing order webhook for {order_id}: {e}")
            return WebhookAck(error=str(e))

        return WebhookAck()
