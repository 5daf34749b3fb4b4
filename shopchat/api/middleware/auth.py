"""Store API-key authentication for widget-facing endpoints.

Each store authenticates with its own ``X-API-Key``; the key identifies
the tenant, so every downstream read and write is scoped to the store
resolved here. Repeated invalid keys from one client IP are throttled.
"""

import hmac
import logging
import threading
import time
from datetime import UTC, datetime, timedelta

from fastapi import Depends, Header, HTTPException, Request

from shopchat.api.dependencies import (
    get_conversation_store,
    get_settings,
    get_store_lookup,
)
from shopchat.catalog.models import StoreConfig
from shopchat.config import ShopChatConfig
from shopchat.errors import AuthenticationError, PersistenceError
from shopchat.services.conversation_store import ConversationStore
from shopchat.services.store_service import StoreLookup

logger = logging.getLogger(__name__)

# --- Rate limiting for auth failures ---
_AUTH_FAIL_MAX = 10  # Max failures per IP in the time window
_AUTH_FAIL_WINDOW_SECONDS = 300  # 5-minute sliding window
_auth_failures: dict[str, list[float]] = {}
_auth_lock = threading.Lock()
_last_sweep = 0.0


def get_client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Extract client IP from request.

    Only uses X-Forwarded-For when ``trust_proxy`` is enabled, so clients
    cannot spoof their address when not behind a trusted reverse proxy.
    """
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _sweep_expired(now: float) -> None:
    """Drop IPs whose failures have all left the window. Caller holds the lock."""
    global _last_sweep
    if now - _last_sweep < _AUTH_FAIL_WINDOW_SECONDS:
        return
    _last_sweep = now
    expired = [
        ip
        for ip, timestamps in _auth_failures.items()
        if not timestamps or now - timestamps[-1] >= _AUTH_FAIL_WINDOW_SECONDS
    ]
    for ip in expired:
        del _auth_failures[ip]


def _is_rate_limited(client_ip: str) -> bool:
    """Check if the client IP has exceeded the auth failure rate limit."""
    with _auth_lock:
        now = time.monotonic()
        _sweep_expired(now)
        timestamps = _auth_failures.get(client_ip)
        if not timestamps:
            return False
        # Prune expired entries
        timestamps = [t for t in timestamps if now - t < _AUTH_FAIL_WINDOW_SECONDS]
        if not timestamps:
            del _auth_failures[client_ip]
            return False
        _auth_failures[client_ip] = timestamps
        return len(timestamps) >= _AUTH_FAIL_MAX


def _record_auth_failure(client_ip: str) -> None:
    """Record an auth failure for the given client IP."""
    with _auth_lock:
        now = time.monotonic()
        _sweep_expired(now)
        _auth_failures.setdefault(client_ip, []).append(now)


def reset_rate_limiter() -> None:
    """Reset the rate limiter state. Used by tests."""
    global _last_sweep
    with _auth_lock:
        _auth_failures.clear()
        _last_sweep = 0.0


async def require_store(
    request: Request,
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    config: ShopChatConfig = Depends(get_settings),
    lookup: StoreLookup = Depends(get_store_lookup),
) -> StoreConfig:
    """Resolve the calling store from its API key.

    Raises:
        HTTPException: 429 when the client IP has too many recent failures.
        AuthenticationError: When the key is missing or unknown.
    """
    client_ip = get_client_ip(request, config.app.trust_proxy)

    # Check rate limit before processing the key
    if _is_rate_limited(client_ip):
        logger.warning("Auth rate limit exceeded for IP %s", client_ip)
        raise HTTPException(
            status_code=429,
            detail="Too many authentication failures. Try again later.",
            headers={"Retry-After": str(_AUTH_FAIL_WINDOW_SECONDS)},
        )

    if not x_api_key:
        _record_auth_failure(client_ip)
        raise AuthenticationError("API key is required", code="E-5001")

    store = await lookup.get_by_api_key(x_api_key)
    if store is None or not hmac.compare_digest(store.api_key or "", x_api_key):
        _record_auth_failure(client_ip)
        logger.info("Rejected invalid API key from %s", client_ip)
        raise AuthenticationError("Invalid API key", code="E-5002")
    return store


async def require_chat_access(
    store: StoreConfig = Depends(require_store),
    config: ShopChatConfig = Depends(get_settings),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> StoreConfig:
    """Require an active store that is within its message quota.

    The quota counts user messages over the trailing
    ``chat.quota_window_days``. A failed quota query lets the request
    through.

    Raises:
        AuthenticationError: E-5003 when the bot is disabled, E-5004
            when the quota is exhausted.
    """
    if not store.bot_active:
        raise AuthenticationError(
            f"Chat is disabled for store {store.id}", code="E-5003"
        )

    if store.max_messages is not None:
        since = datetime.now(UTC) - timedelta(days=config.chat.quota_window_days)
        try:
            used = await conversations.count_user_messages_since(store.id, since)
        except PersistenceError as e:
            logger.warning("Quota check failed for store %s: %s", store.id, e)
            return store
        if used >= store.max_messages:
            logger.info(
                "Store %s over message quota (%d/%d)", store.id, used, store.max_messages
            )
            raise AuthenticationError(
                f"Store {store.id} has used {used} of {store.max_messages} messages",
                code="E-5004",
            )
    return store
