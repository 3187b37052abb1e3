# backend/gold_ledger/routers/__init__.py
"""
API routers for the gold ledger.

Each router handles a specific domain:
- transactions: The append-only purchase/sale log, import and export
- prices: Account quotes, manual updates and fetches
- fund_config: Budget, target price and refresh settings
- summary: Account valuations and the portfolio summary
"""

from gold_ledger.routers.fund_config import router as fund_config_router
from gold_ledger.routers.prices import router as prices_router
from gold_ledger.routers.summary import router as summary_router
from gold_ledger.routers.transactions import router as transactions_router

__all__ = [
    "transactions_router",
    "prices_router",
    "fund_config_router",
    "summary_router",
]
