"""In-process sliding-window rate limiting for chat requests.

State lives in this process only; multi-instance deployments get one
budget per instance.
"""

import logging
import math
import threading
import time
from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from shopchat.api.dependencies import get_settings
from shopchat.api.middleware.auth import get_client_ip
from shopchat.config import ShopChatConfig

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Allow at most ``max_requests`` per key within ``window_seconds``.

    Thread-safe; uses a monotonic clock. Keys whose requests have all
    left the window are dropped, at most once per window.
    """

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, list[float]] = {}
        self._last_sweep: float | None = None
        self._lock = threading.Lock()

    def hit(self, key: str, now: float | None = None) -> float | None:
        """Record a request for ``key``.

        Returns:
            None when the request is allowed, otherwise the number of
            seconds until the oldest request leaves the window.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            timestamps = [
                t for t in self._hits.get(key, []) if now - t < self.window_seconds
            ]
            if len(timestamps) >= self.max_requests:
                self._hits[key] = timestamps
                return self.window_seconds - (now - timestamps[0])
            timestamps.append(now)
            self._hits[key] = timestamps
            return None

    def _sweep(self, now: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [
            key
            for key, timestamps in self._hits.items()
            if not timestamps or now - timestamps[-1] >= self.window_seconds
        ]
        for key in expired:
            del self._hits[key]

    @property
    def tracked_keys(self) -> int:
        """Number of keys currently holding request history."""
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        """Forget all recorded requests. Used by tests."""
        with self._lock:
            self._hits.clear()
            self._last_sweep = None


@lru_cache(maxsize=1)
def _chat_limiter(max_requests: int, window_seconds: int) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(max_requests, window_seconds)


def get_chat_limiter(
    config: ShopChatConfig = Depends(get_settings),
) -> SlidingWindowLimiter:
    """Dependency returning the process-wide chat limiter."""
    return _chat_limiter(
        config.rate_limit.chat_max_requests, config.rate_limit.chat_window_seconds
    )


def reset_chat_limiter() -> None:
    """Drop the cached chat limiter. Used by tests."""
    _chat_limiter.cache_clear()


def enforce_chat_rate_limit(
    request: Request,
    config: ShopChatConfig = Depends(get_settings),
    limiter: SlidingWindowLimiter = Depends(get_chat_limiter),
) -> None:
    """Reject the request with 429 when the client IP is over its budget."""
    if not config.rate_limit.enabled:
        return
    client_ip = get_client_ip(request, config.app.trust_proxy)
    retry_after = limiter.hit(client_ip)
    if retry_after is not None:
        logger.warning("Chat rate limit exceeded for IP %s", client_ip)
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )
