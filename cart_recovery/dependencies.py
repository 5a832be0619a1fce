from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import Settings, get_settings
from cart_recovery.database import get_sessionmaker
from cart_recovery.services.bigcommerce.client import BigCommerceClient
from cart_recovery.services.mailerlite.client import MailerLiteClient
from cart_recovery.services.mailerlite.delivery import MailerLiteDelivery
from cart_recovery.services.notification_gate import NotificationGate


def build_commerce_client(settings: Settings) -> BigCommerceClient:
    return BigCommerceClient(
        store_hash=settings.BIGCOMMERCE_STORE_HASH,
        access_token=settings.BIGCOMMERCE_ACCESS_TOKEN,
        base_url=settings.BIGCOMMERCE_API_URL,
    )


def build_delivery(settings: Settings) -> MailerLiteDelivery:
    client = MailerLiteClient(settings.MAILERLITE_API_KEY, base_url=settings.MAILERLITE_API_URL)
    return MailerLiteDelivery(client, settings)


def build_gate(settings: Settings, delivery=None) -> NotificationGate:
    """Restricted mode is read here, once, and handed to the gate."""
    return NotificationGate(
        delivery or build_delivery(settings),
        restricted_mode=settings.RESTRICTED_MODE,
        allowed_recipient=settings.RESTRICTED_RECIPIENT,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with get_sessionmaker()() as session:
        try:
            yield session
        finally:
            await session.close()


def get_commerce_client(settings: Settings = Depends(get_settings)) -> BigCommerceClient:
    return build_commerce_client(settings)


def get_delivery(settings: Settings = Depends(get_settings)) -> MailerLiteDelivery:
    return build_delivery(settings)


def get_notification_gate(
    settings: Settings = Depends(get_settings),
    delivery: MailerLiteDelivery = Depends(get_delivery),
) -> NotificationGate:
    return build_gate(settings, delivery)
