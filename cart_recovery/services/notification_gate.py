import logging
from typing import Any, Dict, Optional, Protocol

from cart_recovery.core.enums import GateOutcome, TemplateKind

logger = logging.getLogger(__name__)


class NotificationDelivery(Protocol):
    async def notify(self, recipient: str, kind: TemplateKind, payload: Dict[str, Any]) -> bool:
        ...


class NotificationGate:
    """
    Single allow/deny decision in front of every outbound notification.

    With ``restricted_mode`` on, only ``allowed_recipient`` (compared
    case-insensitively) is passed to the delivery client; everyone else is
    skipped without side effects. Callers must treat SKIPPED and FAILED the
    same way: leave flags unset, write no log entry, move on.
    """

    def __init__(
        self,
        delivery: NotificationDelivery,
        restricted_mode: bool = False,
        allowed_recipient: Optional[str] = None,
    ):
        if restricted_mode and not allowed_recipient:
            logger.warning("Restricted mode is on with no allowed recipient; every notification will be skipped")
        self.delivery = delivery
        self.restricted_mode = restricted_mode
        self.allowed_recipient = (allowed_recipient or "").strip()

    def permits(self, recipient: Optional[str]) -> bool:
        if not recipient:
            return False
        if not self.restricted_mode:
            return True
        return recipient.strip().lower() == self.allowed_recipient.lower()

    async def notify(self, recipient: str, kind: TemplateKind, payload: Dict[str, Any]) -> GateOutcome:
        if not self.permits(recipient):
            logger.info(f"RESTRICTED MODE: Skipping {kind.value} email to {recipient} (only sending to {self.allowed_recipient})")
            return GateOutcome.SKIPPED

        try:
            delivered = await self.delivery.notify(recipient, kind, payload)
        except Exception as e:
            logger.exception(f"Delivery of {kind.value} email to {recipient} raised: {e}")
            return GateOutcome.FAILED

        return GateOutcome.SENT if delivered else GateOutcome.FAILED
