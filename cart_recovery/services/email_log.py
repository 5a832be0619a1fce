# cart_recovery/services/email_log.py
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.enums import EmailType
from cart_recovery.core.utils import utcnow
from cart_recovery.models.email_log import EmailLogEntry

logger = logging.getLogger(__name__)


class EmailLogger:
    """
    Writes the email_log audit trail.

    The entry joins whatever transaction the session already has open, inside
    a savepoint, so a failed insert is logged and dropped without undoing the
    caller's flag update.
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def record(
        self,
        email_type: EmailType,
        recipient: str,
        subject: Optional[str] = None,
        cart_id: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> Optional[EmailLogEntry]:
        try:
            async with self.db.begin_nested():
                entry = EmailLogEntry(
                    email_type=EmailType(email_type).value,
                    recipient_email=recipient,
                    subject=(subject or "")[:255] or None,
                    cart_id=cart_id,
                    product_id=product_id,
                    sent_at=self.clock(),
                )
                self.db.add(entry)
            logger.debug(f"Email logged: {email_type} to {recipient}")
            return entry
        except SQLAlchemyError as e:
            logger.error(f"Error writing email log for {recipient}: {str(e)}")
            # Don't raise, the notification already went out
            return None
