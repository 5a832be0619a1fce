"""
Shared enums and constants used across the application.
"""

from enum import Enum


class TemplateKind(str, Enum):
    """Which abandonment track a notification belongs to"""
    CART = "cart"
    BROWSE = "browse"


class EmailType(str, Enum):
    """Values written to email_log.email_type"""
    ABANDONED_CART_1 = "abandoned_cart_1"
    BROWSE_ABANDONMENT = "browse_abandonment"


class NotificationMode(str, Enum):
    """
    How MailerLite delivers a notification.

    CAMPAIGN sends a one-recipient campaign with our own HTML body.
    AUTOMATION enrols the subscriber in a group and lets a MailerLite
    automation send the email.
    """
    CAMPAIGN = "campaign"
    AUTOMATION = "automation"


class GateOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"
