from .cart import Cart
from .browse_event import BrowseEvent
from .email_log import EmailLogEntry

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Cart',
    'BrowseEvent',
    'EmailLogEntry',
]
