# cart_recovery/services/cart_tracker.py
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.exceptions import StoreError, ValidationError
from cart_recovery.core.utils import blank_to_none, to_decimal, utcnow
from cart_recovery.models.cart import Cart

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: AsyncSession, model):
    """INSERT construct with ON CONFLICT support for the session's backend"""
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect](model)
    except KeyError:
        raise StoreError(f"Upserts are not supported on {dialect}") from None


def email_missing(column):
    return or_(column.is_(None), column == "")


class CartTracker:
    """
    Keeps one row per BigCommerce cart in step with the cart webhooks.

    Every write is a single statement so a webhook and a scan touching the
    same cart cannot interleave between a read and a write.
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def upsert_cart(
        self,
        cart_id: str,
        email: Optional[str] = None,
        customer_id: Optional[int] = None,
        snapshot: Optional[Dict[str, Any]] = None,
        total: Any = None,
    ) -> Cart:
        """
        Insert the cart or refresh its snapshot.

        Snapshot, total and updated_at are always replaced. Email and
        customer id only replace the stored value when the incoming one is
        not null. ``converted`` and the stage flags are never touched.
        """
        cart_id = blank_to_none(cart_id)
        if not cart_id:
            raise ValidationError("cart_id is required")

        now = self.clock()
        stmt = dialect_insert(self.db, Cart).values(
            cart_id=cart_id,
            customer_email=blank_to_none(email),
            customer_id=customer_id or None,
            cart_data=snapshot,
            cart_total=to_decimal(total),
            created_at=now,
            updated_at=now,
            converted=False,
            email_sent_1=False,
            email_sent_2=False,
            email_sent_3=False,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Cart.cart_id],
            set_={
                "customer_email": func.coalesce(stmt.excluded.customer_email, Cart.customer_email),
                "customer_id": func.coalesce(stmt.excluded.customer_id, Cart.customer_id),
                "cart_data": stmt.excluded.cart_data,
                "cart_total": stmt.excluded.cart_total,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()

        cart = await self.get_cart(cart_id)
        logger.info(f"Cart {cart_id} stored/updated. Email: {cart.customer_email or 'unknown'}")
        return cart

    async def get_cart(self, cart_id: str) -> Optional[Cart]:
        result = await self.db.execute(
            select(Cart)
            .where(Cart.cart_id == cart_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_converted(self, cart_id: str) -> bool:
        """Flag the cart as converted. Returns False (not an error) if unknown."""
        result = await self.db.execute(
            update(Cart)
            .where(Cart.cart_id == str(cart_id))
            .values(converted=True, updated_at=self.clock())
        )
        await self.db.commit()
        matched = result.rowcount > 0
        if matched:
            logger.info(f"Cart {cart_id} marked as converted")
        else:
            logger.info(f"Order references unknown cart {cart_id}; nothing to convert")
        return matched

    async def find_cart_identifier_without_email_recent(self, window_minutes: int) -> Optional[str]:
        """
        Most recently updated open cart with no email, updated within the
        window. This is a recency guess only: with two anonymous carts in
        flight the newest one wins, right or wrong.
        """
        since = self.clock() - timedelta(minutes=window_minutes)
        return await self.db.scalar(
            select(Cart.cart_id)
            .where(
                email_missing(Cart.customer_email),
                Cart.converted.is_(False),
                Cart.updated_at > since,
            )
            .order_by(Cart.updated_at.desc(), Cart.id.desc())
            .limit(1)
        )

    async def attach_email(self, cart_id: str, email: str) -> bool:
        """Set the email on a cart that still has none. Never overwrites."""
        email = blank_to_none(email)
        if not email:
            return False
        result = await self.db.execute(
            update(Cart)
            .where(Cart.cart_id == cart_id, email_missing(Cart.customer_email))
            .values(customer_email=email)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def associate_email(self, email: str, window_minutes: int) -> Optional[str]:
        """Attach an email learned out-of-band to the most plausible cart."""
        cart_id = await self.find_cart_identifier_without_email_recent(window_minutes)
        if not cart_id:
            return None
        if not await self.attach_email(cart_id, email):
            return None
        logger.info(f"Associated {email} with cart {cart_id}")
        return cart_id

    async def list_open_carts(self, limit: int = 100) -> List[Cart]:
        result = await self.db.execute(
            select(Cart)
            .where(Cart.converted.is_(False))
            .order_by(Cart.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
