# cart_recovery/services/stats_service.py
import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.exceptions import StoreError
from cart_recovery.core.utils import utcnow
from cart_recovery.models.browse_event import BrowseEvent
from cart_recovery.models.cart import Cart
from cart_recovery.schemas.stats import BrowseStats, CartStats
from cart_recovery.services.cart_tracker import email_missing

logger = logging.getLogger(__name__)


def count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class StatsService:
    """Counts by state over a trailing window, for the /api/stats endpoint."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def cart_stats(self, window_days: int = 30) -> CartStats:
        since = self.clock() - timedelta(days=window_days)
        query = (
            select(
                count_where(and_(Cart.converted.is_(False), ~email_missing(Cart.customer_email))).label("abandoned_with_email"),
                count_where(and_(Cart.converted.is_(False), email_missing(Cart.customer_email))).label("abandoned_anonymous"),
                count_where(Cart.converted.is_(True)).label("converted"),
                count_where(Cart.email_sent_1.is_(True)).label("cart_emails_sent"),
            )
            .where(Cart.created_at > since)
        )
        try:
            row = (await self.db.execute(query)).mappings().one()
        except SQLAlchemyError as e:
            logger.error(f"Error computing cart stats: {e}")
            raise StoreError(str(e)) from e
        return CartStats(**{key: int(value) for key, value in row.items()})

    async def browse_stats(self, window_days: int = 30) -> BrowseStats:
        since = self.clock() - timedelta(days=window_days)
        identified = case(
            (~email_missing(BrowseEvent.customer_email), BrowseEvent.customer_email),
            else_=None,
        )
        query = (
            select(
                func.count(BrowseEvent.id).label("total_views"),
                func.count(distinct(identified)).label("unique_visitors_with_email"),
                count_where(BrowseEvent.email_sent.is_(True)).label("browse_emails_sent"),
            )
            .where(BrowseEvent.viewed_at > since)
        )
        try:
            row = (await self.db.execute(query)).mappings().one()
        except SQLAlchemyError as e:
            logger.error(f"Error computing browse stats: {e}")
            raise StoreError(str(e)) from e
        return BrowseStats(**{key: int(value) for key, value in row.items()})
