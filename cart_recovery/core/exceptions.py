class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ValidationError(BaseServiceError):
    """Raised when inbound data is missing a required identifier."""
    pass

class StoreError(BaseServiceError):
    """Raised when the event store cannot complete a query."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for third-party platform errors."""
    pass

class BigCommerceAPIError(PlatformServiceError):
    """Raised when BigCommerce API calls fail."""
    pass

class MailerLiteAPIError(PlatformServiceError):
    """Raised when MailerLite API calls fail."""
    pass
