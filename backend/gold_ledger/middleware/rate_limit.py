# backend/gold_ledger/middleware/rate_limit.py
"""
Rate limiting with slowapi.

Limits are keyed by client IP and kept in memory (one process). They
protect the ledger from runaway clients and, more importantly, keep the
external JD quote endpoints from being hammered by an auto-refresh loop.

Limits live in gold_ledger/services/constants.py:
    RATE_LIMIT_DEFAULT       reads
    RATE_LIMIT_WRITE         create/delete transactions, config changes
    RATE_LIMIT_IMPORT        bulk import
    RATE_LIMIT_PRICE_FETCH   outbound quote fetches
    RATE_LIMIT_HEALTH        health probes

Usage:
    @router.post("/fetch-all")
    @limiter.limit(RATE_LIMIT_PRICE_FETCH)
    def fetch_all(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from gold_ledger.config import settings
from gold_ledger.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_IMPORT,
    RATE_LIMIT_PRICE_FETCH,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

# Seconds advertised in Retry-After; slowapi's smallest window here is a minute
DEFAULT_RETRY_AFTER = 60


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Client IP used as the rate-limit key.

    X-Forwarded-For / X-Real-IP are honoured only when the direct peer is a
    trusted proxy; otherwise a client could pick its own bucket.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return get_remote_address(request)


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 response in the same shape as every other API error."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(f"Rate limit exceeded for {_get_client_ip(request)} on {request.url.path}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": DEFAULT_RETRY_AFTER},
        },
        headers={"Retry-After": str(DEFAULT_RETRY_AFTER)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_IMPORT",
    "RATE_LIMIT_PRICE_FETCH",
    "RATE_LIMIT_HEALTH",
]
