# cart_recovery/models/email_log.py
from sqlalchemy import Column, Integer, String, DateTime, BigInteger

from cart_recovery.core.utils import utcnow
from cart_recovery.database import Base


class EmailLogEntry(Base):
    """Audit record of a delivered notification. Written once, never updated."""
    __tablename__ = "email_log"

    id = Column(Integer, primary_key=True)
    email_type = Column(String(50), nullable=False, index=True)  # 'abandoned_cart_1', 'browse_abandonment'
    recipient_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    sent_at = Column(DateTime, default=utcnow, nullable=False)
    cart_id = Column(String(255), nullable=True)
    product_id = Column(BigInteger, nullable=True)

    def __repr__(self):
        return f"<EmailLogEntry {self.email_type} {self.recipient_email}>"
