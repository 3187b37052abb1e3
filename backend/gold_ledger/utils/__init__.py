# backend/gold_ledger/utils/__init__.py
"""
Cross-cutting utilities for the gold ledger.

- logging: setup_logging() with correlation ID support and JSON output
- context: request-scoped correlation ID storage

Usage:
    from gold_ledger.utils import setup_logging
    from gold_ledger.utils import get_correlation_id, set_correlation_id
"""

from gold_ledger.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from gold_ledger.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
