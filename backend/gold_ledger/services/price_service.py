# backend/gold_ledger/services/price_service.py
"""
Price Service: stored account quotes and the engine's PriceBook.

Responsibilities:
- Manual quote updates per account and for the portfolio-wide price
- Best-effort refresh from a GoldQuoteProvider (one attempt per account)
- Building the PriceBook the ledger engine values holdings with

A failed fetch never touches the stored quote for that account; the
previous quote (or the fallback chain) stays in effect.

Usage:
    service = PriceService()
    price_book = service.get_price_book(db)

    result = service.fetch_all(db)
    print(f"{result.success_count}/{result.total_count} quotes refreshed")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from gold_ledger.config import settings
from gold_ledger.models import LedgerConfig, PriceQuote
from gold_ledger.services.exceptions import InvalidPriceError
from gold_ledger.services.fund_config_service import FundConfigService
from gold_ledger.services.ledger.accounts import ACCOUNT_CODES, get_account
from gold_ledger.services.ledger.calculators import quantize_money
from gold_ledger.services.ledger.types import ZERO, PriceBook
from gold_ledger.services.market_data import GoldQuoteProvider, JDGoldQuoteProvider

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class AccountFetchOutcome:
    """Outcome of refreshing one account's quote."""

    account: str
    success: bool
    price: Decimal | None = None
    observed_at: datetime | None = None
    error: str | None = None


@dataclass
class FetchAllResult:
    """Outcome of refreshing every account's quote."""

    results: list[AccountFetchOutcome] = field(default_factory=list)
    last_update_time: datetime | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.results if outcome.success)

    @property
    def total_count(self) -> int:
        return len(self.results)


# =============================================================================
# SERVICE
# =============================================================================

class PriceService:
    """
    Stores quotes and resolves current prices.

    Args:
        provider: Quote source for fetch operations; JDGoldQuoteProvider by default
        fund_config_service: Access to the portfolio-wide price and refresh time
    """

    def __init__(
            self,
            provider: GoldQuoteProvider | None = None,
            fund_config_service: FundConfigService | None = None,
    ) -> None:
        self._provider = provider
        self.fund_config_service = fund_config_service or FundConfigService()

    @property
    def provider(self) -> GoldQuoteProvider:
        if self._provider is None:
            self._provider = JDGoldQuoteProvider()
        return self._provider

    # =========================================================================
    # READ
    # =========================================================================

    def list_quotes(self, db: Session) -> list[PriceQuote]:
        """Stored quotes, in account registry order."""
        quotes = {quote.account: quote for quote in db.scalars(select(PriceQuote))}
        return [quotes[code] for code in ACCOUNT_CODES if code in quotes]

    def get_price_book(self, db: Session) -> PriceBook:
        config = self.fund_config_service.get_config(db)
        return PriceBook(
            quotes={quote.account: quote.price for quote in self.list_quotes(db)},
            current_price=config.current_price if config is not None else None,
            default_price=settings.default_gold_price,
        )

    # =========================================================================
    # MANUAL UPDATES
    # =========================================================================

    def set_quote(
            self,
            db: Session,
            account: str,
            price: Decimal,
            source: str = MANUAL_SOURCE,
            observed_at: datetime | None = None,
    ) -> PriceQuote:
        """
        Create or overwrite the stored quote of one account.

        Raises:
            InvalidAccountError: Unknown account
            InvalidPriceError: Non-positive price
        """
        get_account(account)
        if price <= ZERO:
            raise InvalidPriceError(price, field="price")

        quote = db.scalar(select(PriceQuote).where(PriceQuote.account == account))
        if quote is None:
            quote = PriceQuote(account=account)
            db.add(quote)

        quote.price = quantize_money(price)
        quote.source = source
        quote.observed_at = observed_at or datetime.now(timezone.utc)

        db.commit()
        db.refresh(quote)

        logger.info(f"Quote for {account} set to {quote.price} ({source})")
        return quote

    def set_current_price(self, db: Session, price: Decimal) -> LedgerConfig:
        """Set the portfolio-wide price used by accounts without a quote."""
        return self.fund_config_service.update_config(db, current_price=quantize_money(price)).config

    # =========================================================================
    # FETCH
    # =========================================================================

    def fetch_quote(self, db: Session, account: str) -> PriceQuote:
        """
        Fetch and store one account's quote.

        Raises:
            InvalidAccountError: Unknown account
            PriceFetchError: The provider could not return a usable price
        """
        quote = self.provider.get_quote(account)
        return self.set_quote(db, account, quote.price, source=quote.provider, observed_at=quote.observed_at)

    def fetch_all(self, db: Session) -> FetchAllResult:
        """
        Refresh every account's quote, one attempt each.

        Failures are reported per account and do not abort the others.
        The config's last_update_time is stamped regardless of outcome.
        """
        batch = self.provider.get_quotes(list(ACCOUNT_CODES))
        result = FetchAllResult()

        for account in ACCOUNT_CODES:
            if account in batch.successful:
                quote = batch.successful[account]
                stored = self.set_quote(
                    db, account, quote.price, source=quote.provider, observed_at=quote.observed_at
                )
                result.results.append(AccountFetchOutcome(
                    account=account,
                    success=True,
                    price=stored.price,
                    observed_at=stored.observed_at,
                ))
            else:
                error = batch.failed.get(account)
                result.results.append(AccountFetchOutcome(
                    account=account,
                    success=False,
                    error=str(error) if error is not None else "no quote returned",
                ))

        config = self.fund_config_service.mark_prices_updated(db)
        result.last_update_time = config.last_update_time

        logger.info(f"Quote refresh finished: {result.success_count}/{result.total_count} accounts updated")
        return result
