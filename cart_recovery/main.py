# cart_recovery/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cart_recovery import __version__
from cart_recovery.core.config import get_settings
from cart_recovery.core.logging_config import configure_logging
from cart_recovery.database import dispose_engine, init_db
from cart_recovery.routes import api, health, tracking, webhooks
from cart_recovery.scheduler import start_scheduler, stop_scheduler

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.RESTRICTED_MODE:
        logger.info(f"RESTRICTED MODE: ON - Only sending to {settings.RESTRICTED_RECIPIENT or '<nobody>'}")
    else:
        logger.info("RESTRICTED MODE: OFF - Sending to all")

    await init_db()
    logger.info("Database tables initialized")

    await start_scheduler(settings)
    try:
        yield  # This is where the app runs
    finally:
        await stop_scheduler()
        await dispose_engine()


app = FastAPI(
    title="Cart Recovery",
    version=__version__,
    lifespan=lifespan
)

# The storefront posts tracking pings and popup signups cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type"],
)

app.include_router(health.router)
app.include_router(webhooks.router)  # Webhooks need to be accessible without auth
app.include_router(tracking.router)
app.include_router(api.router)
