"""
Simple in-memory rate limiting keyed by client address.

A coarse abuse guard mounted as HTTP middleware in front of every /api
route; independent from the per-user daily quotas.
"""
import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("uvicorn.error")


class RateLimiter:
    """
    Sliding-window counter: at most `max_requests` hits per identifier
    within the trailing `window_seconds`.
    """

    def __init__(self, max_requests: int = 60, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        # Format: {identifier: deque([timestamp, ...])}
        self._hits: dict[str, deque] = {}
        self._last_sweep: datetime | None = None
        self._lock = threading.Lock()

    def hit(self, identifier: str, now: datetime | None = None) -> bool:
        """Record one request; return False when the identifier is over the limit."""
        now = now or datetime.now(timezone.utc)
        window_start = now - self.window
        with self._lock:
            self._sweep(now, window_start)
            hits = self._hits.setdefault(identifier, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def _sweep(self, now: datetime, window_start: datetime) -> None:
        """Drop identifiers with no hit inside the window, at most once per window."""
        if self._last_sweep is not None and self._last_sweep > window_start:
            return
        self._last_sweep = now
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def tracked(self) -> int:
        with self._lock:
            return len(self._hits)

    def remaining(self, identifier: str) -> int:
        with self._lock:
            return max(self.max_requests - len(self._hits.get(identifier, ())), 0)

    def retry_after(self, identifier: str, now: datetime | None = None) -> int:
        """Seconds until the oldest hit in the window expires."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            hits = self._hits.get(identifier)
            if not hits:
                return 0
            return max(int((hits[0] + self.window - now).total_seconds()) + 1, 0)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = None


def client_identifier(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit_middleware(request: Request, call_next):
    """
    Reject /api requests beyond the configured per-address budget with 429.
    The limiter lives on `app.state.rate_limiter` so tests can swap it.
    """
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or not request.url.path.startswith("/api"):
        return await call_next(request)

    identifier = client_identifier(request)
    if not limiter.hit(identifier):
        retry_after = limiter.retry_after(identifier)
        logger.warning("[rate-limit] %s exceeded %s requests per %ss",
                       identifier, limiter.max_requests, int(limiter.window.total_seconds()))
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": {"code": "RATE_LIMITED",
                                "message": "Too many requests, please slow down"}},
            headers={"Retry-After": str(retry_after),
                     "RateLimit-Limit": str(limiter.max_requests),
                     "RateLimit-Remaining": "0"},
        )

    response = await call_next(request)
    response.headers["RateLimit-Limit"] = str(limiter.max_requests)
    response.headers["RateLimit-Remaining"] = str(limiter.remaining(identifier))
    return response
