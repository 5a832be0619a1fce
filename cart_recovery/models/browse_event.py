# cart_recovery/models/browse_event.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, BigInteger, false

from cart_recovery.core.utils import utcnow
from cart_recovery.database import Base


class BrowseEvent(Base):
    """
    A single product-page view reported by the storefront tracking script.
    Append only; several rows per (session, product) are expected.
    """
    __tablename__ = "browse_events"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True, index=True)

    # Product snapshot at view time
    product_id = Column(BigInteger, nullable=False)
    product_name = Column(String(255), nullable=True)
    product_url = Column(String(500), nullable=True)
    product_image = Column(String(500), nullable=True)
    product_price = Column(Numeric(10, 2), default=0, nullable=True)

    viewed_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    added_to_cart = Column(Boolean, default=False, server_default=false(), nullable=False)
    email_sent = Column(Boolean, default=False, server_default=false(), nullable=False)

    def __repr__(self):
        return f"<BrowseEvent {self.id} product={self.product_id} email={self.customer_email}>"
