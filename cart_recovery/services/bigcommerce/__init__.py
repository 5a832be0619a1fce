from .client import BigCommerceClient

__all__ = ["BigCommerceClient"]
