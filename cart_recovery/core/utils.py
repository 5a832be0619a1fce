"""
Utility functions for the application.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC now. Every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Normalise empty / whitespace-only strings to None"""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """Coerce prices from webhook / tracking payloads into Decimal(…, 2dp)"""
    cents = Decimal("0.01")
    if value in (None, ""):
        return Decimal(default).quantize(cents)
    try:
        return Decimal(str(value)).quantize(cents)
    except (InvalidOperation, ValueError):
        return Decimal(default).quantize(cents)
