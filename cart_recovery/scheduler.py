"""
Scheduled sweeps for the abandonment service.

Both sweeps run on the application's event loop through APScheduler's
AsyncIOScheduler, so a tick and a webhook handler never run in parallel
threads. ``max_instances=1`` keeps a slow tick from overlapping itself.
Running more than one process with the scheduler enabled is not supported.
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cart_recovery.core.config import Settings, get_settings
from cart_recovery.database import get_session
from cart_recovery.dependencies import build_gate
from cart_recovery.services.abandonment_scanner import AbandonmentScanner, ScanResult

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def cart_scan_task(settings: Optional[Settings] = None) -> Optional[ScanResult]:
    """Task to send abandoned cart emails"""
    settings = settings or get_settings()
    try:
        async with get_session() as db:
            scanner = AbandonmentScanner(db, build_gate(settings), settings)
            return await scanner.process_abandoned_carts()
    except Exception as e:
        logger.exception(f"Error in cart scan task: {str(e)}")
        return None


async def browse_scan_task(settings: Optional[Settings] = None) -> Optional[ScanResult]:
    """Task to send browse abandonment emails"""
    settings = settings or get_settings()
    try:
        async with get_session() as db:
            scanner = AbandonmentScanner(db, build_gate(settings), settings)
            return await scanner.process_browse_abandonment()
    except Exception as e:
        logger.exception(f"Error in browse scan task: {str(e)}")
        return None


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(settings: Optional[Settings] = None) -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    settings = settings or get_settings()
    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        cart_scan_task,
        IntervalTrigger(minutes=settings.CART_SCAN_INTERVAL_MINUTES),
        id="cart_scan",
        name="Abandoned Cart Scan",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Abandoned cart scan scheduled every {settings.CART_SCAN_INTERVAL_MINUTES} minutes")

    scheduler.add_job(
        browse_scan_task,
        IntervalTrigger(minutes=settings.BROWSE_SCAN_INTERVAL_MINUTES),
        id="browse_scan",
        name="Browse Abandonment Scan",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Browse abandonment scan scheduled every {settings.BROWSE_SCAN_INTERVAL_MINUTES} minutes")

    return scheduler


async def start_scheduler(settings: Optional[Settings] = None):
    """Start the scheduler"""
    global scheduler

    settings = settings or get_settings()
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler is disabled. Set SCHEDULER_ENABLED=true to enable")
        return

    if scheduler is None:
        scheduler = create_scheduler(settings)

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")
        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")
    scheduler = None


async def get_scheduler_status():
    """Get current scheduler status and job information"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "trigger": str(job.trigger),
                "next_run_time": getattr(job, "next_run_time", None) and job.next_run_time.isoformat(),
            }
            for job in scheduler.get_jobs()
        ],
    }
