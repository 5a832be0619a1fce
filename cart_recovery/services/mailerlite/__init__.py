from .client import MailerLiteClient
from .delivery import MailerLiteDelivery

__all__ = ["MailerLiteClient", "MailerLiteDelivery"]
