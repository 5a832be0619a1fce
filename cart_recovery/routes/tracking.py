import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import Settings, get_settings
from cart_recovery.core.exceptions import MailerLiteAPIError
from cart_recovery.dependencies import get_commerce_client, get_db, get_delivery
from cart_recovery.schemas.browse import PopupSignupIn, ProductViewIn
from cart_recovery.services.bigcommerce.client import BigCommerceClient
from cart_recovery.services.mailerlite.delivery import MailerLiteDelivery
from cart_recovery.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tracking"])


@router.post("/track/product-view")
async def track_product_view(
    view: ProductViewIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    commerce: BigCommerceClient = Depends(get_commerce_client),
):
    """Product page ping from the storefront snippet"""
    if not view.product_id:
        return JSONResponse(status_code=400, content={"error": "Product ID required"})

    try:
        await TrackingService(db, settings, commerce).record_product_view(view)
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error tracking product view: {e}")
        return {"tracked": False, "error": str(e)}

    return {"tracked": True}


@router.post("/popup/signup")
async def popup_signup(
    signup: PopupSignupIn,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    commerce: BigCommerceClient = Depends(get_commerce_client),
    delivery: MailerLiteDelivery = Depends(get_delivery),
):
    """Email captured by the on-site popup"""
    email = (signup.email or "").strip()
    if not email:
        return JSONResponse(status_code=400, content={"success": False, "error": "Email required"})

    await TrackingService(db, settings, commerce).associate_visitor_email(email)

    try:
        subscribed = await delivery.subscribe_popup(email)
    except MailerLiteAPIError as e:
        logger.error(f"Error processing popup signup: {e}")
        return {"success": False, "error": str(e)}

    if not subscribed:
        return {"success": False, "error": "Group not found"}

    logger.info(f"Popup signup: {email}")
    return {"success": True}
