"""
Request rate limiting.

Two mechanisms are used:

1. Per-user, per-endpoint limits persisted in the `rate_limits` table.
   These survive restarts and are shared across workers; they guard the
   payment endpoints (gateway order creation, signature verification).
2. An in-process fixed-window limiter keyed by client IP, built on the
   `limits` library. It protects unauthenticated or cookie-setting endpoints
   (webhook, auth session, admin) from brute force within a single worker.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from supabase import Client

from storefront.utils.constants import RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when a caller has used up its request budget for the window."""


@dataclass
class RateLimitResult:
    ok: bool
    remaining: int


class IPRateLimiter:
    """
    Fixed-window request counter keyed by an arbitrary string (IP or user id),
    backed by the `limits` library.

    Requests beyond max_requests inside a window are rejected. Counters
    expire with their window, so idle keys do not accumulate.
    """

    def __init__(self, window_seconds: int = 60, max_requests: int = 100):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._storage = MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)

    def check(self, key: str) -> RateLimitResult:
        if not self._limiter.hit(self._item, key):
            return RateLimitResult(ok=False, remaining=0)
        stats = self._limiter.get_window_stats(self._item, key)
        return RateLimitResult(ok=True, remaining=stats.remaining)

    def reset(self) -> None:
        self._storage.reset()


# Shared per-process instance for IP-based limits
global_rate_limiter = IPRateLimiter(window_seconds=60, max_requests=100)


def get_client_ip(request: Request) -> str:
    """Best-effort client IP: first X-Forwarded-For hop, X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


def enforce_ip_rate_limit(request: Request) -> None:
    """
    FastAPI dependency applying the shared IP limiter.

    Raises:
        RateLimitExceeded: when the IP has exceeded its budget
    """
    ip = get_client_ip(request)
    result = global_rate_limiter.check(ip)
    if not result.ok:
        logger.warning(f"IP rate limit exceeded for {ip} on {request.url.path}")
        raise RateLimitExceeded("Rate limit exceeded")


async def enforce_user_rate_limit(
    supabase_client: Client,
    user_id: str,
    endpoint: str,
    max_requests: int,
    window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
) -> None:
    """
    Enforce a per-user request budget using the rate_limits table.

    Counts the user's rows for this endpoint created inside the window. When
    the count is known and has reached max_requests the call is rejected;
    otherwise the current request is recorded.

    Args:
        supabase_client: Authenticated Supabase client (RLS scopes rows to the user)
        user_id: The authenticated user's ID
        endpoint: Logical endpoint name stored in rate_limits.endpoint
        max_requests: Allowed requests per window
        window_seconds: Window length

    Raises:
        RateLimitExceeded: If the user has exhausted the budget

    Notes:
        A failing count query does not block the request.
    """
    window_start = (
        datetime.now(timezone.utc) - timedelta(seconds=window_seconds)
    ).isoformat()

    request_count: Optional[int] = None
    try:
        result = (
            supabase_client.table("rate_limits")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .eq("endpoint", endpoint)
            .gte("created_at", window_start)
            .execute()
        )
        request_count = result.count
    except Exception as e:
        logger.warning(f"Rate limit count failed for endpoint={endpoint}: {e}")

    if request_count is not None and request_count >= max_requests:
        logger.info(f"Rate limit exceeded for user {user_id} on {endpoint}")
        raise RateLimitExceeded("Too many requests. Please try again later.")

    try:
        supabase_client.table("rate_limits").insert(
            {"user_id": user_id, "endpoint": endpoint}
        ).execute()
    except Exception as e:
        logger.warning(f"Failed to record rate limit hit for endpoint={endpoint}: {e}")
