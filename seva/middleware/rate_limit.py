"""Per-IP fixed-window limiter for the login and password-reset routes."""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Request

from seva.errors.exceptions import ThrottledException
from seva.utils.request_meta import client_ip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """In-memory fixed window keyed by ``<ip>:<path>``."""

    def __init__(self, limit: int, window_seconds: int):
        self._limit = limit
        self._window = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, now: Optional[float] = None) -> RateLimitDecision:
        timestamp = now if now is not None else time.monotonic()
        with self._lock:
            started, count = self._windows.get(key, (timestamp, 0))
            if timestamp - started >= self._window:
                started, count = timestamp, 0

            if count >= self._limit:
                retry_after = max(1, math.ceil(started + self._window - timestamp))
                return RateLimitDecision(False, 0, retry_after)

            self._windows[key] = (started, count + 1)
            return RateLimitDecision(True, self._limit - count - 1)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


async def login_rate_limit(request: Request) -> None:
    """Dependency guarding brute-forceable routes"""
    limiter: Optional[RateLimiter] = getattr(request.app.state, "login_limiter", None)
    if limiter is None:
        return

    ip = client_ip(request)
    decision = limiter.check(f"{ip}:{request.url.path}")
    if not decision.allowed:
        logger.warning(f"[RateLimit] {ip} exceeded limit on {request.url.path}")
        raise ThrottledException(
            decision.retry_after,
            detail="Too many attempts from this IP, please try again later",
        )
