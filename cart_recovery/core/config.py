# cart_recovery/core/config.py

import os
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from cart_recovery.core.enums import NotificationMode


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # BigCommerce API
    BIGCOMMERCE_STORE_HASH: str = ""
    BIGCOMMERCE_ACCESS_TOKEN: str = ""
    BIGCOMMERCE_API_URL: str = "https://api.bigcommerce.com/stores"

    # MailerLite API
    MAILERLITE_API_KEY: str = ""
    MAILERLITE_API_URL: str = "https://connect.mailerlite.com/api"
    NOTIFICATION_MODE: NotificationMode = NotificationMode.CAMPAIGN
    MAILERLITE_CART_GROUP: str = "Abandoned Cart"
    MAILERLITE_BROWSE_GROUP: str = "Browse Abandonment"
    MAILERLITE_POPUP_GROUP: str = "Website Popup"

    # Restricted (test) mode - only RESTRICTED_RECIPIENT receives email
    RESTRICTED_MODE: bool = True
    RESTRICTED_RECIPIENT: str = ""

    # Sweep timers
    SCHEDULER_ENABLED: bool = True
    CART_SCAN_INTERVAL_MINUTES: int = 5
    BROWSE_SCAN_INTERVAL_MINUTES: int = 10

    # Abandonment policy
    CART_DWELL_MINUTES: int = 60
    BROWSE_DWELL_MINUTES: int = 120
    BROWSE_CART_SUPPRESSION_HOURS: int = 24
    SCAN_BATCH_SIZE: int = 10
    BROWSE_PRODUCT_LIMIT: int = 3
    EMAIL_ASSOCIATION_WINDOW_MINUTES: int = 30
    STATS_WINDOW_DAYS: int = 30

    # Email content
    STORE_NAME: str = "Peek-a-Boo Pattern Shop"
    STORE_URL: str = "https://www.peekaboopatternshop.com"
    STORE_ADDRESS: str = "205 Settlers Loop, United States"
    SENDER_NAME: str = "Peek-a-Boo Pattern Shop"
    SENDER_EMAIL: str = ""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def async_database_url(self) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support"""
        url = self.DATABASE_URL or os.environ.get('DATABASE_URL', '')
        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
        elif url.startswith('postgresql://'):
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return url

    @property
    def cart_url(self) -> str:
        return f"{self.STORE_URL.rstrip('/')}/cart.php"


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
