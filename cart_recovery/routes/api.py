import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import Settings, get_settings
from cart_recovery.core.enums import GateOutcome, TemplateKind
from cart_recovery.core.exceptions import StoreError
from cart_recovery.dependencies import get_db, get_notification_gate
from cart_recovery.schemas.browse import BrowseEventRead
from cart_recovery.schemas.cart import CartRead
from cart_recovery.schemas.stats import StatsResponse
from cart_recovery.services.abandonment_scanner import AbandonmentScanner
from cart_recovery.services.browse_tracker import BrowseTracker
from cart_recovery.services.cart_tracker import CartTracker
from cart_recovery.services.email_templates import sample_payload
from cart_recovery.services.notification_gate import NotificationGate
from cart_recovery.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/abandoned-carts", response_model=List[CartRead])
async def list_abandoned_carts(db: AsyncSession = Depends(get_db)):
    """Latest 100 carts that have not converted"""
    try:
        return await CartTracker(db).list_open_carts(limit=100)
    except SQLAlchemyError as e:
        logger.error(f"Error listing carts: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/browse-events", response_model=List[BrowseEventRead])
async def list_browse_events(db: AsyncSession = Depends(get_db)):
    """Latest 100 product views"""
    try:
        return await BrowseTracker(db).list_recent(limit=100)
    except SQLAlchemyError as e:
        logger.error(f"Error listing browse events: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    stats = StatsService(db)
    window = settings.STATS_WINDOW_DAYS
    try:
        carts = await stats.cart_stats(window)
        browse = await stats.browse_stats(window)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return StatsResponse(
        carts=carts,
        browse=browse,
        window_days=window,
        restricted_mode=settings.RESTRICTED_MODE,
        restricted_recipient=settings.RESTRICTED_RECIPIENT if settings.RESTRICTED_MODE else None,
    )


@router.post("/process-abandoned")
async def process_abandoned(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gate: NotificationGate = Depends(get_notification_gate),
):
    """Run the cart sweep now"""
    try:
        result = await AbandonmentScanner(db, gate, settings).process_abandoned_carts()
    except SQLAlchemyError as e:
        logger.error(f"Manual cart scan failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "success": True,
        "message": "Cart processing triggered",
        "restricted_mode": settings.RESTRICTED_MODE,
        "result": result.as_dict(),
    }


@router.post("/process-browse")
async def process_browse(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gate: NotificationGate = Depends(get_notification_gate),
):
    """Run the browse sweep now"""
    try:
        result = await AbandonmentScanner(db, gate, settings).process_browse_abandonment()
    except SQLAlchemyError as e:
        logger.error(f"Manual browse scan failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "success": True,
        "message": "Browse processing triggered",
        "restricted_mode": settings.RESTRICTED_MODE,
        "result": result.as_dict(),
    }


@router.post("/test-email")
async def send_test_email(
    body: Optional[dict] = Body(default=None),
    settings: Settings = Depends(get_settings),
    gate: NotificationGate = Depends(get_notification_gate),
):
    """Send sample content to the restricted-mode recipient. Touches no data."""
    try:
        kind = TemplateKind((body or {}).get("type"))
    except ValueError:
        raise HTTPException(status_code=400, detail='Type must be "cart" or "browse"')

    recipient = settings.RESTRICTED_RECIPIENT
    if not recipient:
        raise HTTPException(status_code=400, detail="RESTRICTED_RECIPIENT is not configured")

    outcome = await gate.notify(recipient, kind, sample_payload(kind, settings))
    success = outcome == GateOutcome.SENT
    return {
        "success": success,
        "message": f"Test {kind.value} email sent" if success else "Failed to send",
        "restricted_mode": settings.RESTRICTED_MODE,
    }
