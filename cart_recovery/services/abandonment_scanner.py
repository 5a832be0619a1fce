# cart_recovery/services/abandonment_scanner.py
"""
Periodic sweeps that turn stored carts and product views into abandonment
emails.

Each candidate is handled in its own transaction:

1. the Notification Gate is consulted first; a skipped recipient touches
   nothing;
2. the notified flag is claimed with a conditional UPDATE that re-checks
   eligibility, so a second scanner blocks on (PostgreSQL) or misses the row;
3. the email is delivered;
4. on success the audit entry is written and everything commits together,
   otherwise the claim is rolled back and the candidate is picked up again
   on the next run.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy import and_, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import Settings
from cart_recovery.core.enums import EmailType, GateOutcome, TemplateKind
from cart_recovery.core.utils import utcnow
from cart_recovery.models.browse_event import BrowseEvent
from cart_recovery.models.cart import Cart
from cart_recovery.services.browse_tracker import BrowseTracker, has_image
from cart_recovery.services.cart_tracker import email_missing
from cart_recovery.services.email_log import EmailLogger
from cart_recovery.services.email_templates import browse_payload, cart_payload
from cart_recovery.services.notification_gate import NotificationGate

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    track: str
    selected: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class AbandonmentScanner:
    """
    Runs the cart track and the browse track.

    The browse track never emails someone who has an open cart updated within
    ``BROWSE_CART_SUPPRESSION_HOURS``; cart abandonment takes priority.
    """

    def __init__(
        self,
        db: AsyncSession,
        gate: NotificationGate,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.gate = gate
        self.settings = settings
        self.clock = clock
        self.browse = BrowseTracker(db, clock=clock)
        self.email_log = EmailLogger(db, clock=clock)

    # ------------------------------------------------------------------
    # Cart track
    # ------------------------------------------------------------------
    def _cart_eligibility(self, cutoff: datetime):
        return and_(
            ~email_missing(Cart.customer_email),
            Cart.converted.is_(False),
            Cart.email_sent_1.is_(False),
            Cart.updated_at < cutoff,
        )

    async def process_abandoned_carts(self) -> ScanResult:
        logger.info("Checking for abandoned carts...")
        result = ScanResult(track="cart")

        now = self.clock()
        cutoff = now - timedelta(minutes=self.settings.CART_DWELL_MINUTES)
        rows = (await self.db.execute(
            select(Cart.id, Cart.cart_id, Cart.customer_email, Cart.cart_data)
            .where(self._cart_eligibility(cutoff))
            .order_by(Cart.updated_at.asc(), Cart.id.asc())
            .limit(self.settings.SCAN_BATCH_SIZE)
        )).all()
        # Release the read transaction before any external calls
        await self.db.rollback()

        result.selected = len(rows)
        logger.info(f"Found {len(rows)} abandoned carts to process")

        for row in rows:
            email = row.customer_email
            if not self.gate.permits(email):
                logger.info(f"RESTRICTED MODE: Skipping cart {row.cart_id} for {email}")
                result.skipped += 1
                continue

            try:
                outcome = await self._notify_cart(row, cutoff)
            except Exception as e:
                await self.db.rollback()
                logger.exception(f"Error processing cart {row.cart_id}: {e}")
                result.failed += 1
                continue

            if outcome == GateOutcome.SENT:
                result.sent += 1
            elif outcome == GateOutcome.SKIPPED:
                result.skipped += 1
            else:
                result.failed += 1

        logger.info(f"Cart scan finished: {result.as_dict()}")
        return result

    async def _notify_cart(self, row, cutoff: datetime) -> GateOutcome:
        claimed = await self.db.execute(
            update(Cart)
            .where(Cart.id == row.id, self._cart_eligibility(cutoff))
            .values(email_sent_1=True)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            # Converted, updated or already handled since selection
            await self.db.rollback()
            logger.info(f"Cart {row.cart_id} is no longer eligible; skipping")
            return GateOutcome.SKIPPED

        logger.info(f"Processing cart {row.cart_id} for {row.customer_email}")
        payload = cart_payload(row.cart_id, row.cart_data, self.settings.STORE_URL)
        outcome = await self.gate.notify(row.customer_email, TemplateKind.CART, payload)

        if outcome != GateOutcome.SENT:
            await self.db.rollback()
            return outcome

        await self.email_log.record(
            EmailType.ABANDONED_CART_1,
            row.customer_email,
            subject=payload["subject"],
            cart_id=row.cart_id,
        )
        await self.db.commit()
        logger.info(f"Successfully sent abandoned cart email for {row.cart_id}")
        return outcome

    # ------------------------------------------------------------------
    # Browse track
    # ------------------------------------------------------------------
    def _open_cart_exists(self, email_column, since: datetime):
        return exists().where(
            Cart.customer_email == email_column,
            Cart.converted.is_(False),
            Cart.updated_at > since,
        )

    async def process_browse_abandonment(self) -> ScanResult:
        logger.info("Checking for browse abandonment...")
        result = ScanResult(track="browse")

        now = self.clock()
        cutoff = now - timedelta(minutes=self.settings.BROWSE_DWELL_MINUTES)
        suppress_since = now - timedelta(hours=self.settings.BROWSE_CART_SUPPRESSION_HOURS)

        emails = (await self.db.execute(
            select(BrowseEvent.customer_email)
            .where(
                ~email_missing(BrowseEvent.customer_email),
                BrowseEvent.email_sent.is_(False),
                BrowseEvent.viewed_at < cutoff,
                has_image(BrowseEvent.product_image),
                ~self._open_cart_exists(BrowseEvent.customer_email, suppress_since),
            )
            .group_by(BrowseEvent.customer_email)
            .order_by(func.min(BrowseEvent.viewed_at).asc(), BrowseEvent.customer_email)
            .limit(self.settings.SCAN_BATCH_SIZE)
        )).scalars().all()
        await self.db.rollback()

        result.selected = len(emails)
        logger.info(f"Found {len(emails)} browse abandonment emails to process")

        for email in emails:
            if not self.gate.permits(email):
                logger.info(f"RESTRICTED MODE: Skipping browse abandonment for {email}")
                result.skipped += 1
                continue

            try:
                outcome = await self._notify_browse(email, cutoff, suppress_since)
            except Exception as e:
                await self.db.rollback()
                logger.exception(f"Error processing browse abandonment for {email}: {e}")
                result.failed += 1
                continue

            if outcome == GateOutcome.SENT:
                result.sent += 1
            elif outcome == GateOutcome.SKIPPED:
                result.skipped += 1
            else:
                result.failed += 1

        logger.info(f"Browse scan finished: {result.as_dict()}")
        return result

    async def _notify_browse(
        self,
        email: str,
        cutoff: datetime,
        suppress_since: datetime,
    ) -> Optional[GateOutcome]:
        products = await self.browse.select_eligible_products(
            email, cutoff, self.settings.BROWSE_PRODUCT_LIMIT
        )
        if not products:
            await self.db.rollback()
            return GateOutcome.SKIPPED

        # A cart may have appeared since the candidate query ran
        if await self.db.scalar(select(self._open_cart_exists(email, suppress_since))):
            await self.db.rollback()
            logger.info(f"{email} has an open cart; leaving browse views for later")
            return GateOutcome.SKIPPED

        claimed = await self.browse.mark_email_sent(email, cutoff)
        if claimed == 0:
            await self.db.rollback()
            return GateOutcome.SKIPPED

        logger.info(f"Processing browse abandonment for {email} with {len(products)} products")
        payload = browse_payload(products)
        outcome = await self.gate.notify(email, TemplateKind.BROWSE, payload)

        if outcome != GateOutcome.SENT:
            await self.db.rollback()
            return outcome

        await self.email_log.record(
            EmailType.BROWSE_ABANDONMENT,
            email,
            subject=payload["subject"],
            product_id=products[0].product_id,
        )
        await self.db.commit()
        logger.info(f"Successfully sent browse abandonment email for {email} ({claimed} views flagged)")
        return outcome
