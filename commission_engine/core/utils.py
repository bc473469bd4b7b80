from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from commission_engine.core.config import CURRENCY_QUANTUM


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def quantize_money(amount) -> Decimal:
    """Round to the smallest currency unit, half-up."""
    return Decimal(amount).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)
