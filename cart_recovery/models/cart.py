# cart_recovery/models/cart.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, BigInteger, false

from cart_recovery.core.utils import utcnow
from cart_recovery.database import Base
from cart_recovery.models.types import JSONPayload


class Cart(Base):
    """
    One shopping-cart session on BigCommerce, upserted from cart webhooks.

    ``converted`` and the ``email_sent_N`` stage flags only ever go from
    False to True. Rows are never deleted.
    """
    __tablename__ = "abandoned_carts"

    id = Column(Integer, primary_key=True)
    cart_id = Column(String(255), unique=True, nullable=False)
    customer_email = Column(String(255), nullable=True, index=True)
    customer_id = Column(BigInteger, nullable=True)

    # Full cart payload from /v3/carts/{id}
    cart_data = Column(JSONPayload, nullable=True)
    cart_total = Column(Numeric(10, 2), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    converted = Column(Boolean, default=False, server_default=false(), nullable=False, index=True)
    email_sent_1 = Column(Boolean, default=False, server_default=false(), nullable=False)
    email_sent_2 = Column(Boolean, default=False, server_default=false(), nullable=False)
    email_sent_3 = Column(Boolean, default=False, server_default=false(), nullable=False)

    def __repr__(self):
        return f"<Cart {self.cart_id} email={self.customer_email} converted={self.converted}>"
