"""Time helpers shared by the OTP and order layers."""
import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC ``datetime``; OTP expiries are stored without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def ceil_seconds(delta_seconds: float) -> int:
    return int(math.ceil(delta_seconds))
