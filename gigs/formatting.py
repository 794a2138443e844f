"""JSON-friendly conversions for row values."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


def isoformat(value: Any) -> Optional[str]:
    """Render a timestamp column, passing through None and strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def decimal_str(value: Any) -> Optional[str]:
    """Render a DECIMAL column without float rounding."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return str(value)
    return str(Decimal(str(value)))
