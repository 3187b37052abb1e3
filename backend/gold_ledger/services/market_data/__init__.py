# backend/gold_ledger/services/market_data/__init__.py
"""
Gold quote providers.

Usage:
    from gold_ledger.services.market_data import JDGoldQuoteProvider

    quote = JDGoldQuoteProvider().get_quote("CZB_JD")

Architecture:
    GoldQuoteProvider (ABC)
    └── JDGoldQuoteProvider (httpx)
"""

from gold_ledger.services.market_data.base import (
    GoldQuote,
    GoldQuoteProvider,
    QuoteBatchResult,
)
from gold_ledger.services.market_data.jd_gold import JDGoldQuoteProvider

__all__ = [
    "GoldQuote",
    "GoldQuoteProvider",
    "QuoteBatchResult",
    "JDGoldQuoteProvider",
]
