"""
Rate Limiting

Unauthenticated lookups (the account-exists probe at GET /auth/{email}) are
throttled per client IP with a sliding window so the endpoint cannot be used
to enumerate seller emails at speed.

Usage:
    from .rate_limiter import rate_limit_dependency

    @router.get("/auth/{email}", dependencies=[Depends(rate_limit_dependency(30))])
    async def probe(email: str):
        ...
"""

import logging
import time
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from .core.config import get_settings

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────
# In-Memory Sliding Window
# ────────────────────────────────────────────────────────────────

class RateLimiter:
    """
    Per-process sliding window keyed by client IP and endpoint.

    State is not shared between workers; each worker enforces its own window.
    """

    def __init__(
        self,
        cleanup_interval: int = 300,
        retention_seconds: int = 3600,
        trusted_proxies: Optional[Iterable[str]] = None,
    ):
        # {ip_address: [(timestamp, endpoint), ...]}
        self.requests: Dict[str, List[Tuple[float, str]]] = defaultdict(list)
        self.cleanup_interval = cleanup_interval
        self.retention_seconds = retention_seconds
        self.last_cleanup = time.time()
        # None means read TRUSTED_PROXIES from the settings on each request
        self.trusted_proxies = set(trusted_proxies) if trusted_proxies is not None else None

    def _trusted(self) -> Set[str]:
        if self.trusted_proxies is not None:
            return self.trusted_proxies
        return set(get_settings().trusted_proxies_list)

    def client_ip(self, request: Request) -> str:
        """
        Client address used as the rate limit key.

        X-Forwarded-For is only honoured when the socket peer is a trusted
        proxy; the right-most hop that is not itself a trusted proxy wins.
        """
        peer = request.client.host if request.client else "unknown"
        trusted = self._trusted()
        if peer not in trusted:
            return peer

        forwarded = request.headers.get("X-Forwarded-For")
        if not forwarded:
            return peer

        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        for hop in reversed(hops):
            if hop not in trusted:
                return hop
        return hops[0] if hops else peer

    def _cleanup_old_requests(self, now: float) -> None:
        if now - self.last_cleanup < self.cleanup_interval:
            return

        cutoff = now - self.retention_seconds
        for ip in list(self.requests.keys()):
            self.requests[ip] = [(ts, ep) for ts, ep in self.requests[ip] if ts > cutoff]
            if not self.requests[ip]:
                del self.requests[ip]

        self.last_cleanup = now
        logger.debug(f"Rate limiter cleanup: {len(self.requests)} IPs tracked")

    def check_rate_limit(
        self,
        request: Request,
        max_requests: int,
        window_seconds: int = 60,
        endpoint: Optional[str] = None,
    ) -> Tuple[bool, dict]:
        """
        Record the request if it fits in the window.

        Returns:
            (is_allowed, metadata) where metadata has remaining, reset_time,
            total_requests, limit and window_seconds
        """
        now = time.time()
        self._cleanup_old_requests(now)

        ip = self.client_ip(request)
        endpoint_name = endpoint or request.url.path
        window_start = now - window_seconds
        recent = [
            ts for ts, ep in self.requests[ip]
            if ts > window_start and ep == endpoint_name
        ]

        count = len(recent)
        is_allowed = count < max_requests
        reset_time = (min(recent) if recent else now) + window_seconds

        if is_allowed:
            self.requests[ip].append((now, endpoint_name))

        return is_allowed, {
            "remaining": max(0, max_requests - count - (1 if is_allowed else 0)),
            "reset_time": int(reset_time),
            "total_requests": count,
            "limit": max_requests,
            "window_seconds": window_seconds,
        }


_rate_limiter = RateLimiter()


# ────────────────────────────────────────────────────────────────
# FastAPI Dependency
# ────────────────────────────────────────────────────────────────

def rate_limit_dependency(max_requests: int, window_seconds: int = 60, endpoint: Optional[str] = None):
    """
    Build a dependency enforcing ``max_requests`` per ``window_seconds`` per IP.

    ``endpoint`` groups requests under one key; by default the request path is
    used, which for a path parameter route means one window per distinct URL.
    """
    async def dependency(request: Request) -> None:
        is_allowed, metadata = _rate_limiter.check_rate_limit(
            request=request,
            max_requests=max_requests,
            window_seconds=window_seconds,
            endpoint=endpoint,
        )

        if not is_allowed:
            retry_after = max(1, metadata["reset_time"] - int(time.time()))
            logger.warning(
                f"[RATE_LIMIT] Blocked request from {_rate_limiter.client_ip(request)} "
                f"to {endpoint or request.url.path}: "
                f"{metadata['total_requests']}/{metadata['limit']} in {window_seconds}s window"
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "success": False,
                    "message": f"Too many requests. Limit: {max_requests} per {window_seconds}s",
                    "retry_after": retry_after,
                    "reset_time": datetime.fromtimestamp(metadata["reset_time"]).isoformat(),
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(metadata["reset_time"]),
                },
            )

        request.state.rate_limit_headers = {
            "X-RateLimit-Limit": str(metadata["limit"]),
            "X-RateLimit-Remaining": str(metadata["remaining"]),
            "X-RateLimit-Reset": str(metadata["reset_time"]),
        }

    return dependency


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Copy the headers stored by rate_limit_dependency onto the response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        headers = getattr(request.state, "rate_limit_headers", None)
        if headers:
            for header, value in headers.items():
                response.headers[header] = value
        return response


def clear_rate_limits(ip_address: Optional[str] = None) -> None:
    """Forget recorded requests for one IP, or for everyone."""
    if ip_address:
        _rate_limiter.requests.pop(ip_address, None)
        logger.info(f"Cleared rate limits for IP: {ip_address}")
    else:
        _rate_limiter.requests.clear()
        logger.info("Cleared all rate limits")
