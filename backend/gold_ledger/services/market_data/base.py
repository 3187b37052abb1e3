# backend/gold_ledger/services/market_data/base.py
"""
Abstract interface for gold quote providers.

A provider turns an account code into the latest price per gram that the
account's bank is quoting. Using an abstract base class allows for:
- Swapping the JD endpoints for another source
- Mock implementations for testing

Fetches are best-effort. A provider makes exactly one attempt per account
and reports failure by raising PriceFetchError; nothing here retries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from gold_ledger.services.exceptions import MarketDataError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class GoldQuote:
    """
    One observed price per gram.

    Attributes:
        account: Account code the quote applies to
        price: Price per gram (always positive)
        observed_at: When the quote was fetched (UTC)
        provider: Name of the provider that returned it
    """

    account: str
    price: Decimal
    observed_at: datetime
    provider: str

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValueError(f"Quote price must be positive, got {self.price}")


@dataclass
class QuoteBatchResult:
    """
    Outcome of fetching quotes for several accounts.

    Attributes:
        successful: Quotes keyed by account code
        failed: Errors keyed by account code
    """

    successful: dict[str, GoldQuote] = field(default_factory=dict)
    failed: dict[str, MarketDataError] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class GoldQuoteProvider(ABC):
    """Contract every quote provider implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and stored on PriceQuote.source."""
        pass

    @abstractmethod
    def get_quote(self, account: str) -> GoldQuote:
        """
        Fetch the latest price for one account.

        Raises:
            InvalidAccountError: Account is not registered
            PriceFetchError: Transport failure or unusable payload
        """
        pass

    def get_quotes(self, accounts: list[str]) -> QuoteBatchResult:
        """
        Fetch quotes for several accounts, one attempt each.

        A failure on one account does not stop the others.
        """
        result = QuoteBatchResult()

        for account in accounts:
            try:
                result.successful[account] = self.get_quote(account)
            except MarketDataError as e:
                logger.warning(f"Quote fetch failed for {account}: {e}")
                result.failed[account] = e

        return result
