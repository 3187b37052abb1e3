# backend/gold_ledger/utils/context.py
"""
Request-scoped context for the gold ledger API.

Holds the correlation ID of the request being served so that log records
emitted anywhere below the router (ledger service, quote provider) can be
tied back to a single HTTP call.

contextvars are used so the value follows async/await boundaries and never
leaks between concurrent requests.

Usage:
    from gold_ledger.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")
    get_correlation_id()  # "abc-123"
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Bind a correlation ID to the current context.

    Called by CorrelationIdMiddleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)
