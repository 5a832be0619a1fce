from fastapi import APIRouter, Depends
from sqlalchemy import text

from cart_recovery import __version__
from cart_recovery.core.config import Settings, get_settings
from cart_recovery.database import get_session
from cart_recovery.scheduler import get_scheduler_status

router = APIRouter(tags=["health"])


@router.get("/")
async def root(settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "message": "Abandoned Cart App is running",
        "version": __version__,
        "restricted_mode": settings.RESTRICTED_MODE,
        "restricted_recipient": settings.RESTRICTED_RECIPIENT if settings.RESTRICTED_MODE else "N/A",
    }


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Cart Recovery"}


@router.get("/health/db")
async def database_health():
    """Check database connectivity"""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }


@router.get("/api/scheduler")
async def scheduler_status():
    return await get_scheduler_status()
