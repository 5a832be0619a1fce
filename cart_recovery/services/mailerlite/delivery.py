"""Notification delivery through MailerLite."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from cart_recovery.core.config import Settings
from cart_recovery.core.enums import NotificationMode, TemplateKind
from cart_recovery.core.exceptions import MailerLiteAPIError
from cart_recovery.services.email_templates import render_email
from cart_recovery.services.mailerlite.client import MailerLiteClient

logger = logging.getLogger(__name__)


class MailerLiteDelivery:
    """
    Delivers abandonment notifications.

    In CAMPAIGN mode every message is a one-recipient MailerLite campaign
    carrying HTML rendered from our templates. In AUTOMATION mode the
    subscriber is upserted with product custom fields and added to the
    group for that track; a MailerLite automation listening on the group
    sends the email.

    ``notify`` returns False on any MailerLite failure and never raises.
    """

    def __init__(self, client: MailerLiteClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.mode = NotificationMode(settings.NOTIFICATION_MODE)
        self._group_ids: Dict[str, Optional[str]] = {}

    async def notify(self, recipient: str, kind: TemplateKind, payload: Dict[str, Any]) -> bool:
        try:
            if self.mode == NotificationMode.AUTOMATION:
                await self._enroll(recipient, kind, payload)
            else:
                await self._send_campaign(recipient, kind, payload)
        except MailerLiteAPIError as e:
            logger.error(f"Error sending {kind.value} email to {recipient}: {e}")
            return False

        logger.info(f"Email sent to {recipient}: {payload.get('subject')}")
        return True

    async def _send_campaign(self, recipient: str, kind: TemplateKind, payload: Dict[str, Any]) -> None:
        # The campaign send needs the subscriber to exist first
        await self.client.upsert_subscriber(recipient)
        html = render_email(kind, payload, self.settings)
        campaign_id = await self.client.create_campaign(
            subject=payload["subject"],
            html=html,
            from_name=self.settings.SENDER_NAME,
            from_email=self.settings.SENDER_EMAIL,
            recipient=recipient,
        )
        await self.client.send_campaign(campaign_id, recipient)

    async def _enroll(self, recipient: str, kind: TemplateKind, payload: Dict[str, Any]) -> None:
        group_name = self._group_name(kind)
        group_id = await self.group_id(group_name)
        if not group_id:
            raise MailerLiteAPIError(f"Group not found: {group_name}")
        await self.client.upsert_subscriber(
            recipient,
            fields=self._automation_fields(kind, payload),
            groups=[group_id],
        )

    async def unenroll(self, email: str) -> bool:
        """
        Take a buyer out of the abandoned-cart group so the automation stops.
        Only meaningful in AUTOMATION mode.
        """
        if self.mode != NotificationMode.AUTOMATION or not email:
            return False
        try:
            group_id = await self.group_id(self.settings.MAILERLITE_CART_GROUP)
            subscriber = await self.client.get_subscriber(email)
            if not group_id or not subscriber:
                return False
            await self.client.remove_subscriber_from_group(str(subscriber["id"]), group_id)
        except MailerLiteAPIError as e:
            logger.error(f"Error removing {email} from cart group: {e}")
            return False
        logger.info(f"Removed {email} from {self.settings.MAILERLITE_CART_GROUP}")
        return True

    async def subscribe_popup(self, email: str) -> bool:
        """Add a popup signup to the popup group. False when the group is missing."""
        group_id = await self.group_id(self.settings.MAILERLITE_POPUP_GROUP)
        if not group_id:
            return False
        await self.client.upsert_subscriber(email, groups=[group_id])
        return True

    async def group_id(self, name: str) -> Optional[str]:
        if name not in self._group_ids:
            self._group_ids[name] = await self.client.find_group_id(name)
        return self._group_ids[name]

    def _group_name(self, kind: TemplateKind) -> str:
        if kind == TemplateKind.CART:
            return self.settings.MAILERLITE_CART_GROUP
        return self.settings.MAILERLITE_BROWSE_GROUP

    @staticmethod
    def _automation_fields(kind: TemplateKind, payload: Dict[str, Any]) -> Dict[str, Any]:
        if kind == TemplateKind.CART:
            product = payload.get("product") or {}
            return {
                "cart_product_name": product.get("name"),
                "cart_product_image": product.get("image"),
                "cart_product_url": product.get("url"),
                "cart_product_price": product.get("price"),
            }
        fields: Dict[str, Any] = {}
        for index, product in enumerate(payload.get("products", [])[:3], start=1):
            fields[f"browse_product_{index}_name"] = product.get("name")
            fields[f"browse_product_{index}_image"] = product.get("image")
            fields[f"browse_product_{index}_url"] = product.get("url")
        return fields
