import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.dependencies import get_commerce_client, get_db, get_delivery
from cart_recovery.schemas.webhook import BigCommerceWebhook, WebhookAck
from cart_recovery.services.bigcommerce.client import BigCommerceClient
from cart_recovery.services.mailerlite.delivery import MailerLiteDelivery
from cart_recovery.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def parse_envelope(request: Request) -> BigCommerceWebhook:
    """Tolerant body parsing: a malformed body still gets a 200."""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    try:
        return BigCommerceWebhook.model_validate({**body, "data": data})
    except ValidationError as e:
        # Only the data block matters; drop envelope fields of the wrong type
        logger.warning(f"Unexpected webhook envelope fields: {e.errors()}")
        return BigCommerceWebhook(data=data)


def _ack(ack: WebhookAck) -> dict:
    return ack.model_dump(exclude_none=True)


@router.post("/cart-created")
async def cart_created_webhook(
    envelope: BigCommerceWebhook = Depends(parse_envelope),
    db: AsyncSession = Depends(get_db),
    commerce: BigCommerceClient = Depends(get_commerce_client),
):
    """BigCommerce store/cart/created"""
    logger.info(f"Cart created webhook received: {envelope.data}")
    return _ack(await WebhookProcessor(db, commerce).process_cart_event(envelope))


@router.post("/cart-updated")
async def cart_updated_webhook(
    envelope: BigCommerceWebhook = Depends(parse_envelope),
    db: AsyncSession = Depends(get_db),
    commerce: BigCommerceClient = Depends(get_commerce_client),
):
    """BigCommerce store/cart/updated"""
    logger.info(f"Cart updated webhook received: {envelope.data}")
    return _ack(await WebhookProcessor(db, commerce).process_cart_event(envelope))


@router.post("/order-created")
async def order_created_webhook(
    envelope: BigCommerceWebhook = Depends(parse_envelope),
    db: AsyncSession = Depends(get_db),
    commerce: BigCommerceClient = Depends(get_commerce_client),
    delivery: MailerLiteDelivery = Depends(get_delivery),
):
    """BigCommerce store/order/created - marks the cart converted"""
    logger.info(f"Order created webhook received: {envelope.data}")
    return _ack(await WebhookProcessor(db, commerce, delivery).process_order_created(envelope))
