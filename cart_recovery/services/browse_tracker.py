# cart_recovery/services/browse_tracker.py
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.exceptions import ValidationError
from cart_recovery.core.utils import blank_to_none, to_decimal, utcnow
from cart_recovery.models.browse_event import BrowseEvent
from cart_recovery.schemas.browse import EligibleProduct

logger = logging.getLogger(__name__)


def has_image(column):
    return (column.is_not(None)) & (column != "")


class BrowseTracker:
    """Append-only record of product views, plus the browse-email selection."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def record_view(
        self,
        session_id: Optional[str],
        email: Optional[str],
        product_id: Optional[int],
        name: Optional[str] = None,
        url: Optional[str] = None,
        image: Optional[str] = None,
        price: Any = None,
    ) -> BrowseEvent:
        """Always inserts a new row, even for a product already viewed in this session."""
        if not product_id:
            raise ValidationError("Product ID required")

        event = BrowseEvent(
            session_id=blank_to_none(session_id),
            customer_email=blank_to_none(email),
            product_id=int(product_id),
            product_name=name,
            product_url=url,
            product_image=image,
            product_price=to_decimal(price),
            viewed_at=self.clock(),
        )
        self.db.add(event)
        await self.db.commit()

        logger.info(f"Product view tracked: {product_id} - {name} ({event.customer_email or 'anonymous'})")
        return event

    def eligible_products_query(self, email: str, cutoff: datetime, limit: int):
        """
        Latest view per product among the email's unsent, image-bearing views
        older than ``cutoff``, then the ``limit`` most recent of those.
        """
        ranked = (
            select(
                BrowseEvent.product_id,
                BrowseEvent.product_name,
                BrowseEvent.product_url,
                BrowseEvent.product_image,
                BrowseEvent.product_price,
                BrowseEvent.viewed_at,
                func.row_number().over(
                    partition_by=BrowseEvent.product_id,
                    order_by=(BrowseEvent.viewed_at.desc(), BrowseEvent.id.desc()),
                ).label("recency_rank"),
            )
            .where(
                BrowseEvent.customer_email == email,
                BrowseEvent.email_sent.is_(False),
                BrowseEvent.viewed_at < cutoff,
                has_image(BrowseEvent.product_image),
            )
            .subquery()
        )
        return (
            select(ranked)
            .where(ranked.c.recency_rank == 1)
            .order_by(ranked.c.viewed_at.desc(), ranked.c.product_id)
            .limit(limit)
        )

    async def select_eligible_products(self, email: str, cutoff: datetime, limit: int = 3) -> List[EligibleProduct]:
        result = await self.db.execute(self.eligible_products_query(email, cutoff, limit))
        return [EligibleProduct.model_validate(dict(row)) for row in result.mappings().all()]

    async def mark_email_sent(self, email: str, cutoff: datetime) -> int:
        """
        Flag every currently-eligible view for ``email`` (unsent, with an
        image, viewed before ``cutoff``) in one statement. Includes products
        that did not make it into the email. Does not commit.
        """
        result = await self.db.execute(
            update(BrowseEvent)
            .where(
                BrowseEvent.customer_email == email,
                BrowseEvent.email_sent.is_(False),
                BrowseEvent.viewed_at < cutoff,
                has_image(BrowseEvent.product_image),
            )
            .values(email_sent=True)
        )
        return result.rowcount

    async def list_recent(self, limit: int = 100) -> List[BrowseEvent]:
        result = await self.db.execute(
            select(BrowseEvent)
            .order_by(BrowseEvent.viewed_at.desc(), BrowseEvent.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
